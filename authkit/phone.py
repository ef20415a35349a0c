"""
Phone number normalization and validation utilities
"""
import re
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from .domain.errors import InvalidPhoneError

DEFAULT_REGION = "ID"

_PHONE_SHAPE = re.compile(r"^\+?[0-9(][0-9\s\-().]*$")


def normalize_phone(phone: str, default_region: Optional[str] = None) -> str:
    """
    Normalize a phone number to E.164 format.

    Args:
        phone: Phone number string, local ("081234567890") or international
        default_region: Region code used when no country code is present (default: ID)

    Returns:
        Normalized phone number, e.g. "+6281234567890"

    Raises:
        InvalidPhoneError: If the number cannot be parsed or is not a valid number
    """
    region = (default_region or DEFAULT_REGION).upper()
    try:
        parsed = phonenumbers.parse(phone, region)
    except NumberParseException as e:
        raise InvalidPhoneError(f"Invalid phone number format: {e}") from e

    if not phonenumbers.is_valid_number(parsed):
        raise InvalidPhoneError("Invalid phone number")

    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def is_valid_phone(phone: str, default_region: Optional[str] = None) -> bool:
    try:
        normalize_phone(phone, default_region)
        return True
    except InvalidPhoneError:
        return False


def region_for_phone(phone: str, default_region: Optional[str] = None) -> str:
    """Return the ISO region code a valid number belongs to."""
    region = (default_region or DEFAULT_REGION).upper()
    try:
        parsed = phonenumbers.parse(phone, region)
    except NumberParseException as e:
        raise InvalidPhoneError(f"Invalid phone number format: {e}") from e
    if not phonenumbers.is_valid_number(parsed):
        raise InvalidPhoneError("Invalid phone number")
    return phonenumbers.region_code_for_number(parsed)


def looks_like_phone(value: str) -> bool:
    """Cheap shape check: optional leading '+', then digits with spaces, dashes, dots or parentheses."""
    if not value:
        return False
    cleaned = value.strip()
    return bool(_PHONE_SHAPE.match(cleaned)) and sum(ch.isdigit() for ch in cleaned) >= 5
