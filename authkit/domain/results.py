from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .. import models


class OtpPurpose(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    RESET_PASSWORD = "reset_password"
    VERIFY = "verify"


class TokenType(str, Enum):
    PASSWORD_RESET = "password_reset"
    EMAIL_VERIFY = "email_verify"


@dataclass
class OtpRequestResult:
    otp: models.OtpCode
    reused: bool = False


@dataclass
class OtpVerifyResult:
    """Outcome of a purpose-aware OTP verification.

    ``user`` is always set; ``reset_token`` only for ``reset_password``.
    """

    purpose: OtpPurpose
    user: models.User
    reset_token: Optional[str] = None
