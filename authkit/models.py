from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, ForeignKey, Index, UniqueConstraint, text
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=True)
    hashed_password = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)
    last_login = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    otps = relationship("OtpCode", back_populates="user")
    oauth_accounts = relationship("OAuthAccount", back_populates="user")


class OtpCode(Base):
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    code = Column(String(10), nullable=False)
    type = Column(String(20), nullable=False)
    target = Column(String(255), nullable=False, default="")
    purpose = Column(String(50), nullable=False, default="login")
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    valid = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="otps")

    __table_args__ = (
        # At most one live code per (user, channel, purpose); races surface as IntegrityError
        Index(
            "uq_otp_codes_active",
            "user_id",
            "type",
            "purpose",
            unique=True,
            sqlite_where=text("valid = 1"),
            postgresql_where=text("valid"),
        ),
    )

    def is_usable(self, max_attempts: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        if self.used_at is not None:
            return False
        if now >= self.expires_at:
            return False
        if (self.attempts or 0) >= max_attempts:
            return False
        return bool(self.valid)

    def increment_attempts(self, max_attempts: int) -> None:
        self.attempts = (self.attempts or 0) + 1
        if self.attempts >= max_attempts:
            self.valid = False


class Token(Base):
    """Single-use opaque token (password reset, email verification) owned by any record."""

    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    owner_type = Column(String(50), nullable=False, default="user")
    token = Column(String(255), unique=True, index=True, nullable=False)
    type = Column(String(50), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.used_at is None and now < self.expires_at


class OAuthAccount(Base):
    __tablename__ = "oauth_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)
    provider_id = Column(String(100), nullable=False)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    data = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="oauth_accounts")

    __table_args__ = (
        UniqueConstraint("provider", "provider_id", name="uq_oauth_provider_id"),
    )
