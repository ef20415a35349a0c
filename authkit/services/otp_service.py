"""
One-time password engine.

Codes are bound to (user, channel, purpose). A code is usable while it is unused,
unexpired, flagged valid and below the attempt limit. Expiry is detected lazily at
verification time; nothing sweeps the table in the background.
"""
from __future__ import annotations
from dataclasses import dataclass
import logging
import secrets
from typing import Optional

from .. import models
from ..core.logging import mask_contact
from ..core.settings import OTP_CHANNELS, Settings
from ..domain.errors import InvalidChannelError, OtpInvalidOrExpiredError
from ..domain.interfaces import OtpRepositoryProtocol
from ..domain.results import OtpRequestResult
from ..infrastructure.dispatch import DispatcherProtocol

logger = logging.getLogger(__name__)

OTP_ALPHABET = "0123456789"
DEFAULT_OTP_LENGTH = 6


def generate_code(length: int = DEFAULT_OTP_LENGTH) -> str:
    """Numeric code with each digit drawn uniformly from a CSPRNG."""
    if length <= 0:
        length = DEFAULT_OTP_LENGTH
    return "".join(secrets.choice(OTP_ALPHABET) for _ in range(length))


def validate_channel(channel: str) -> str:
    if channel not in OTP_CHANNELS:
        raise InvalidChannelError("Invalid OTP type")
    return channel


@dataclass
class OtpService:
    otp_repo: OtpRepositoryProtocol
    settings: Settings
    dispatcher: Optional[DispatcherProtocol] = None

    @property
    def max_attempts(self) -> int:
        return int(self.settings.OTP_MAX_ATTEMPTS)

    def request(self, user_id: int, channel: str, purpose: str, target: str = "") -> OtpRequestResult:
        """Return the active code for the tuple, or mint a new one."""
        validate_channel(channel)

        existing = self.otp_repo.find_flagged(user_id=user_id, otp_type=channel, purpose=purpose)
        if existing is not None:
            if existing.is_usable(self.max_attempts) and self.settings.OTP_REUSE_ACTIVE:
                logger.info("Reusing active %s OTP for user %s (%s)", channel, user_id, purpose)
                return OtpRequestResult(otp=existing, reused=True)
            # Expired, exhausted, or rotation policy: retire before issuing
            self.otp_repo.retire(existing)

        code = generate_code(self.settings.OTP_LENGTH)
        expires_at = models.utcnow() + self.settings.otp_expire_delta
        otp = self.otp_repo.create_otp(
            user_id=user_id,
            code=code,
            otp_type=channel,
            target=target,
            purpose=purpose,
            expires_at=expires_at,
        )
        logger.info("Issued %s OTP for user %s (%s) to %s", channel, user_id, purpose, mask_contact(target))
        return OtpRequestResult(otp=otp, reused=False)

    def verify(self, user_id: int, code: str, channel: str, purpose: str) -> bool:
        otp = self.otp_repo.find_for_verify(user_id=user_id, code=code, otp_type=channel, purpose=purpose)
        if otp is None:
            logger.info("OTP verification failed for user %s (%s/%s): no match", user_id, channel, purpose)
            raise OtpInvalidOrExpiredError("Invalid or expired code")

        if not otp.is_usable(self.max_attempts):
            logger.info("OTP verification failed for user %s (%s/%s): not usable", user_id, channel, purpose)
            raise OtpInvalidOrExpiredError("Invalid or expired code")

        if not self.otp_repo.consume(otp):
            logger.info("OTP verification failed for user %s (%s/%s): already consumed", user_id, channel, purpose)
            raise OtpInvalidOrExpiredError("Invalid or expired code")
        return True

    def register_failed_attempt(self, otp: models.OtpCode) -> None:
        """Count a failed attempt against ``otp``; it is exhausted once the limit is hit."""
        self.otp_repo.increment_attempts(otp, self.max_attempts)
        if not otp.valid:
            logger.info("OTP %s exhausted after %s attempts", otp.id, otp.attempts)

    def dispatch(self, otp: models.OtpCode) -> None:
        """Hand the code to its transport. Failures propagate; the stored code stays issued."""
        if self.dispatcher is None:
            raise RuntimeError("No OTP dispatcher configured")
        self.dispatcher.send_otp(otp)
