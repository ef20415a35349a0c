"""Routes OTP codes and one-time tokens to the transport of their channel."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import httpx

from .. import models
from ..core.logging import mask_contact
from ..core.settings import Settings
from ..domain.errors import DeliveryError, InvalidChannelError
from .mailer import SmtpMailer
from .messaging import HttpMessageSender

logger = logging.getLogger(__name__)


class DispatcherProtocol(Protocol):
    def send_otp(self, otp: models.OtpCode) -> None:
        ...

    def send_password_reset(self, email: str, token: str) -> None:
        ...

    def send_email_verification(self, email: str, token: str) -> None:
        ...


class OtpDispatcher:
    """Default dispatcher.

    A channel that is not enabled in settings falls back to the log (the code itself is
    only logged when ``ENV=dev``), so local setups work without any gateway.
    """

    def __init__(
        self,
        settings: Settings,
        mailer: Optional[SmtpMailer] = None,
        senders: Optional[Dict[str, HttpMessageSender]] = None,
    ):
        self.settings = settings
        self.mailer = mailer or SmtpMailer(settings)
        self._senders = dict(senders or {})

    def render(self, otp: models.OtpCode) -> str:
        return self.settings.OTP_MESSAGE_TEMPLATE.format(code=otp.code, expires_in=self.settings.OTP_EXPIRES_IN)

    def _sender(self, channel: str) -> HttpMessageSender:
        if channel not in self._senders:
            self._senders[channel] = HttpMessageSender(channel, self.settings.channel(channel))
        return self._senders[channel]

    def _log_fallback(self, channel: str, target: str, secret: str) -> None:
        if self.settings.is_dev:
            logger.info("[%s][console] to=%s secret=%s", channel, target, secret)
        else:
            logger.warning("[%s] transport disabled; nothing sent to %s", channel, mask_contact(target))

    def send_otp(self, otp: models.OtpCode) -> None:
        message = self.render(otp)
        try:
            if otp.type == "email":
                if self.settings.OTP_EMAIL_ENABLED:
                    self.mailer.send_otp_email(otp.target, otp.code, message)
                else:
                    self._log_fallback("email", otp.target, otp.code)
            elif otp.type in ("sms", "whatsapp"):
                if self.settings.channel(otp.type).enabled:
                    self._sender(otp.type).send(otp.target, message)
                else:
                    self._log_fallback(otp.type, otp.target, otp.code)
            else:
                raise InvalidChannelError(f"Unsupported OTP type: {otp.type}")
        except (httpx.HTTPError, OSError, RuntimeError, ValueError) as exc:
            logger.error("[%s] delivery to %s failed: %s", otp.type, mask_contact(otp.target), exc)
            raise DeliveryError(f"Failed to deliver OTP via {otp.type}") from exc

    def send_password_reset(self, email: str, token: str) -> None:
        if not self.settings.OTP_EMAIL_ENABLED:
            self._log_fallback("email", email, token)
            return
        try:
            self.mailer.send_password_reset_email(email, token)
        except (OSError, RuntimeError) as exc:
            logger.error("[email] password reset delivery to %s failed: %s", mask_contact(email), exc)
            raise DeliveryError("Failed to deliver password reset email") from exc

    def send_email_verification(self, email: str, token: str) -> None:
        if not self.settings.OTP_EMAIL_ENABLED:
            self._log_fallback("email", email, token)
            return
        try:
            self.mailer.send_verification_email(email, token)
        except (OSError, RuntimeError) as exc:
            logger.error("[email] verification delivery to %s failed: %s", mask_contact(email), exc)
            raise DeliveryError("Failed to deliver verification email") from exc
