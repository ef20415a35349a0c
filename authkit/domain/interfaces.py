from __future__ import annotations
from typing import Optional, Protocol
from datetime import datetime

from .. import models


class UserRepositoryProtocol(Protocol):
    def get_by_email(self, email: str) -> Optional[models.User]:
        ...

    def get_by_phone(self, phone: str) -> Optional[models.User]:
        ...

    def get_by_id(self, user_id: int) -> Optional[models.User]:
        ...

    def create_user(
        self,
        *,
        email: str,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
        hashed_password: Optional[str],
        is_verified: bool = False,
        commit: bool = True,
    ) -> models.User:
        ...

    def touch_last_login(self, user: models.User) -> None:
        ...

    def set_password(self, user: models.User, hashed_password: str) -> None:
        ...

    def mark_verified(self, user: models.User) -> None:
        ...


class OtpRepositoryProtocol(Protocol):
    def create_otp(
        self, *, user_id: int, code: str, otp_type: str, target: str, purpose: str, expires_at: datetime
    ) -> models.OtpCode:
        ...

    def find_flagged(self, *, user_id: int, otp_type: str, purpose: str) -> Optional[models.OtpCode]:
        ...

    def find_for_verify(self, *, user_id: int, code: str, otp_type: str, purpose: str) -> Optional[models.OtpCode]:
        ...

    def retire(self, otp: models.OtpCode) -> None:
        ...

    def consume(self, otp: models.OtpCode) -> bool:
        ...

    def increment_attempts(self, otp: models.OtpCode, max_attempts: int) -> None:
        ...


class TokenRepositoryProtocol(Protocol):
    def create_token(self, *, owner_id: int, token: str, token_type: str, expires_at: datetime, owner_type: str = "user") -> models.Token:
        ...

    def get_by_token(self, token: str) -> Optional[models.Token]:
        ...

    def mark_used(self, token: models.Token) -> None:
        ...


class OAuthRepositoryProtocol(Protocol):
    def find_link(self, provider: str, provider_id: str) -> Optional[models.OAuthAccount]:
        ...

    def create_link(self, *, user_id: int, provider: str, provider_id: str, commit: bool = True, **fields) -> models.OAuthAccount:
        ...

    def update_tokens(self, link: models.OAuthAccount, **fields) -> None:
        ...
