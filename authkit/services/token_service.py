from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
import logging
import secrets
from typing import Any, Dict, Optional, Tuple

from .. import models
from ..core.settings import Settings
from ..domain.errors import TokenInvalidOrExpiredError, UnauthorizedError
from ..domain.interfaces import TokenRepositoryProtocol
from ..security import create_access_token, decode_token

logger = logging.getLogger(__name__)


@dataclass
class TokenClaims:
    user_id: int
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_verified: bool = False
    iat: Optional[int] = None
    exp: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    def has_role(self, *roles: str) -> bool:
        return self.role in roles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role,
            "is_verified": self.is_verified,
            "iat": self.iat,
            "exp": self.exp,
        }


class TokenIssuer:
    """Mints and checks bearer tokens carrying the user's identity claims.

    The role is read once at issuance; a role change only shows up in tokens
    issued afterwards.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def expires_in(self) -> int:
        return int(self.settings.access_token_expire_delta.total_seconds())

    def issue(self, user: models.User) -> Tuple[str, int]:
        token = create_access_token(
            data={
                "sub": str(user.id),
                "user_id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role or "user",
                "is_verified": bool(user.is_verified),
            },
            settings=self.settings,
        )
        return token, self.expires_in

    def verify(self, token: str) -> TokenClaims:
        payload = decode_token(token, self.settings)
        if not payload:
            raise UnauthorizedError("Invalid or expired token")
        user_id = payload.get("user_id")
        if user_id is None or not payload.get("email"):
            raise UnauthorizedError("Invalid token claims")
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            raise UnauthorizedError("Invalid token claims") from None
        return TokenClaims(
            user_id=user_id,
            email=payload["email"],
            role=payload.get("role") or "",
            first_name=payload.get("first_name"),
            last_name=payload.get("last_name"),
            is_verified=bool(payload.get("is_verified")),
            iat=payload.get("iat"),
            exp=payload.get("exp"),
            raw=payload,
        )


@dataclass
class OneTimeTokenService:
    """Opaque single-use tokens (password reset, email verification)."""

    token_repo: TokenRepositoryProtocol

    def issue(self, owner_id: int, token_type: str, ttl: timedelta, owner_type: str = "user") -> models.Token:
        value = secrets.token_urlsafe(32)
        expires_at = models.utcnow() + ttl
        return self.token_repo.create_token(
            owner_id=owner_id, token=value, token_type=token_type, expires_at=expires_at, owner_type=owner_type
        )

    def consume(self, token: str, token_type: str) -> models.Token:
        record = self.token_repo.get_by_token(token) if token else None
        if record is None or record.type != token_type or not record.is_usable():
            logger.info("Rejected %s token", token_type)
            raise TokenInvalidOrExpiredError("Invalid or expired token")
        self.token_repo.mark_used(record)
        return record
