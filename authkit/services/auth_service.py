from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Optional

from .. import models
from ..core.logging import mask_contact
from ..core.settings import Settings
from ..domain.errors import (
    AccountDisabledError,
    UserAlreadyExistsError,
    PasswordPolicyError,
    InvalidCredentialsError,
    InvalidInputError,
    TokenInvalidOrExpiredError,
    OtpPurposeNotSupportedError,
    UserNotFoundError,
)
from ..domain.interfaces import UserRepositoryProtocol
from ..domain.results import OtpPurpose, OtpVerifyResult, TokenType
from ..infrastructure.dispatch import DispatcherProtocol
from ..phone import normalize_phone
from ..security import get_password_hash, verify_password, validate_password_policy
from .identity import IdentityResolver
from .otp_service import OtpService, validate_channel
from .token_service import OneTimeTokenService

logger = logging.getLogger(__name__)


def _parse_purpose(purpose: Optional[str]) -> OtpPurpose:
    try:
        return OtpPurpose(purpose or OtpPurpose.LOGIN.value)
    except ValueError:
        raise InvalidInputError("Invalid purpose") from None


def ensure_active(user: models.User) -> None:
    if not user.is_active:
        logger.info("Login refused for disabled user %s", user.id)
        raise AccountDisabledError("Account disabled")


@dataclass
class AuthService:
    user_repo: UserRepositoryProtocol
    otp_service: OtpService
    tokens: OneTimeTokenService
    identity: IdentityResolver
    dispatcher: DispatcherProtocol
    settings: Settings

    # Users
    def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
        default_region: Optional[str] = None,
    ) -> models.User:
        if self.user_repo.get_by_email(email):
            raise UserAlreadyExistsError("Email already registered")
        pw_err = validate_password_policy(password)
        if pw_err:
            raise PasswordPolicyError(pw_err)

        formatted_phone = None
        if phone:
            formatted_phone = normalize_phone(phone, default_region or self.settings.OTP_DEFAULT_REGION)
            if self.user_repo.get_by_phone(formatted_phone):
                raise UserAlreadyExistsError("Phone number already registered")

        user = self.user_repo.create_user(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=formatted_phone,
            hashed_password=get_password_hash(password),
        )
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, identifier: str, password: str, default_region: Optional[str] = None) -> models.User:
        # Unknown user and wrong password are deliberately indistinguishable
        try:
            user = self.identity.resolve(identifier, default_region)
        except UserNotFoundError:
            raise InvalidCredentialsError("Invalid credentials") from None
        if not verify_password(password, user.hashed_password):
            raise InvalidCredentialsError("Invalid credentials")
        ensure_active(user)
        self.user_repo.touch_last_login(user)
        return user

    # OTP flows
    def request_otp_login(self, contact: str, channel: str, default_region: Optional[str] = None) -> models.OtpCode:
        return self.request_otp(contact, channel, OtpPurpose.LOGIN.value, default_region)

    def verify_otp_login(self, contact: str, channel: str, code: str, default_region: Optional[str] = None) -> models.User:
        validate_channel(channel)
        user, _target = self.identity.resolve_contact(contact, channel, default_region)
        ensure_active(user)
        self.otp_service.verify(user.id, code, channel, OtpPurpose.LOGIN.value)
        self.user_repo.touch_last_login(user)
        return user

    def request_otp(
        self, contact: str, channel: str, purpose: Optional[str] = None, default_region: Optional[str] = None
    ) -> models.OtpCode:
        """Issue (or reuse) a code for ``purpose`` and send it over ``channel``."""
        validate_channel(channel)
        purpose_ = _parse_purpose(purpose)

        if purpose_ is OtpPurpose.REGISTER:
            if self.identity.contact_registered(contact, channel, default_region):
                raise UserAlreadyExistsError("Contact already registered")
            # Codes are bound to a user; unregistered contacts register first, then verify
            raise OtpPurposeNotSupportedError("Register the account first, then request a 'verify' code")

        user, target = self.identity.resolve_contact(contact, channel, default_region)
        result = self.otp_service.request(user.id, channel, purpose_.value, target)
        self.otp_service.dispatch(result.otp)
        logger.info("OTP (%s/%s) sent to %s", channel, purpose_.value, mask_contact(target))
        return result.otp

    def verify_otp(
        self,
        contact: str,
        channel: str,
        code: str,
        purpose: Optional[str] = None,
        default_region: Optional[str] = None,
    ) -> OtpVerifyResult:
        purpose_ = _parse_purpose(purpose)
        if purpose_ is OtpPurpose.REGISTER:
            raise OtpPurposeNotSupportedError("Register the account first, then request a 'verify' code")

        if purpose_ is OtpPurpose.LOGIN:
            user = self.verify_otp_login(contact, channel, code, default_region)
            return OtpVerifyResult(purpose=purpose_, user=user)

        validate_channel(channel)
        user, _target = self.identity.resolve_contact(contact, channel, default_region)
        self.otp_service.verify(user.id, code, channel, purpose_.value)

        if purpose_ is OtpPurpose.VERIFY:
            self.user_repo.mark_verified(user)
            return OtpVerifyResult(purpose=purpose_, user=user)

        reset = self.tokens.issue(user.id, TokenType.PASSWORD_RESET.value, self.settings.reset_token_expire_delta)
        return OtpVerifyResult(purpose=purpose_, user=user, reset_token=reset.token)

    # Password reset / email verification tokens
    def forgot_password(self, email: str) -> Optional[str]:
        """Issue and send a reset token if the email exists; returns it for callers/tests.

        Returns None if the user does not exist so callers can respond identically either way.
        """
        user = self.user_repo.get_by_email(email)
        if not user:
            return None
        record = self.tokens.issue(user.id, TokenType.PASSWORD_RESET.value, self.settings.reset_token_expire_delta)
        self.dispatcher.send_password_reset(user.email, record.token)
        return record.token

    def reset_password(self, token: str, new_password: str) -> models.User:
        pw_err = validate_password_policy(new_password)
        if pw_err:
            raise PasswordPolicyError(pw_err)
        record = self.tokens.consume(token, TokenType.PASSWORD_RESET.value)
        user = self.user_repo.get_by_id(record.owner_id)
        if user is None:
            raise TokenInvalidOrExpiredError("Invalid or expired token")
        self.user_repo.set_password(user, get_password_hash(new_password))
        logger.info("Password reset for user %s", user.id)
        return user

    def request_email_verification(self, email: str) -> Optional[str]:
        user = self.user_repo.get_by_email(email)
        if not user or user.is_verified:
            return None
        record = self.tokens.issue(user.id, TokenType.EMAIL_VERIFY.value, self.settings.verify_token_expire_delta)
        self.dispatcher.send_email_verification(user.email, record.token)
        return record.token

    def verify_email(self, token: str) -> models.User:
        record = self.tokens.consume(token, TokenType.EMAIL_VERIFY.value)
        user = self.user_repo.get_by_id(record.owner_id)
        if user is None:
            raise TokenInvalidOrExpiredError("Invalid or expired token")
        self.user_repo.mark_verified(user)
        return user
