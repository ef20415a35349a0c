from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Tuple

from .. import models
from ..core.settings import Settings
from ..domain.errors import InvalidPhoneError, UserNotFoundError
from ..domain.interfaces import UserRepositoryProtocol
from ..phone import looks_like_phone, normalize_phone


@dataclass
class IdentityResolver:
    """Resolves a user from an email-or-phone identifier.

    Email is tried first, so an identifier that matches both fields resolves to
    the email owner. Phone-shaped identifiers are normalized to E.164 before the
    phone lookup in every path.
    """

    user_repo: UserRepositoryProtocol
    settings: Settings

    def _region(self, default_region: Optional[str]) -> str:
        return default_region or self.settings.OTP_DEFAULT_REGION

    def resolve(self, identifier: str, default_region: Optional[str] = None) -> models.User:
        identifier = (identifier or "").strip()
        if not identifier:
            raise UserNotFoundError("User not found")

        user = self.user_repo.get_by_email(identifier)
        if user is not None:
            return user

        phone = identifier
        if looks_like_phone(identifier):
            try:
                phone = normalize_phone(identifier, self._region(default_region))
            except InvalidPhoneError:
                raise UserNotFoundError("User not found") from None

        user = self.user_repo.get_by_phone(phone)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    def normalize_contact(self, contact: str, channel: str, default_region: Optional[str] = None) -> str:
        """Canonical form of a contact for a channel; raises InvalidPhoneError for bad phones."""
        contact = (contact or "").strip()
        if channel == "email":
            return contact
        if looks_like_phone(contact):
            return normalize_phone(contact, self._region(default_region))
        raise InvalidPhoneError("Invalid phone number")

    def resolve_contact(self, contact: str, channel: str, default_region: Optional[str] = None) -> Tuple[models.User, str]:
        target = self.normalize_contact(contact, channel, default_region)
        if channel == "email":
            user = self.user_repo.get_by_email(target)
        else:
            user = self.user_repo.get_by_phone(target)
        if user is None:
            raise UserNotFoundError("User not found")
        return user, target

    def contact_registered(self, contact: str, channel: str, default_region: Optional[str] = None) -> bool:
        try:
            self.resolve_contact(contact, channel, default_region)
        except UserNotFoundError:
            return False
        return True
