"""
SMS and WhatsApp delivery through an HTTP messaging gateway.

The gateway is configured per channel (``OTP_SMS_*`` / ``OTP_WHATSAPP_*``) and receives
a JSON body ``{"from", "to", "channel", "message"}`` with the API key as a bearer token.
"""
import logging
from typing import Optional

import httpx

from ..core.settings import ChannelSettings

logger = logging.getLogger(__name__)


class HttpMessageSender:
    """Posts messages to one channel's gateway."""

    def __init__(self, channel: str, config: ChannelSettings, client: Optional[httpx.Client] = None, timeout: float = 10.0):
        if not config.api_url:
            raise ValueError(f"{channel} gateway URL is not configured")
        self.channel = channel
        self.config = config
        self.timeout = timeout
        self._client = client

    def send(self, to: str, message: str) -> None:
        payload = {
            "from": self.config.sender,
            "to": to,
            "channel": self.channel,
            "message": message,
        }
        headers = {"Authorization": f"Bearer {self.config.api_key}"} if self.config.api_key else {}

        if self._client is not None:
            response = self._client.post(self.config.api_url, json=payload, headers=headers, timeout=self.timeout)
        else:
            with httpx.Client() as client:
                response = client.post(self.config.api_url, json=payload, headers=headers, timeout=self.timeout)
        response.raise_for_status()
        logger.info("[%s] message accepted by gateway (status %s)", self.channel, response.status_code)
