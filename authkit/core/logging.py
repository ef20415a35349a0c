"""Logging setup shared by the FastAPI app and the framework adapters."""
from __future__ import annotations

import logging

from .settings import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: Settings) -> None:
    """Attach a plain stream handler to the ``authkit`` logger at ``LOG_LEVEL``."""
    logger = logging.getLogger("authkit")
    logger.setLevel(settings.LOG_LEVEL.upper())
    if not any(getattr(h, "_authkit", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._authkit = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def mask_contact(contact: str) -> str:
    """Mask an email or phone for safe logging: ``a***@x.com`` / ``***7890``."""
    if not contact:
        return ""
    if "@" in contact:
        local, _, domain = contact.partition("@")
        return f"{local[:1]}***@{domain}"
    digits = "".join(ch for ch in contact if ch.isdigit())
    return f"***{digits[-4:]}"
