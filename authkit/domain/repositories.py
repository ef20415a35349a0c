from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from .errors import ConflictError, UpstreamError

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(db: Session, conflict_message: str) -> Iterator[None]:
    """Roll back and re-raise storage failures as domain errors."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        logger.info("Unique constraint violated: %s", conflict_message)
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage failure: %s", exc)
        raise UpstreamError("Storage failure") from exc


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_email(self, email: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.email == email).first()

    def get_by_phone(self, phone: str) -> Optional[models.User]:
        return self.db.query(models.User).filter(models.User.phone == phone).first()

    def get_by_id(self, user_id: int) -> Optional[models.User]:
        return self.db.get(models.User, user_id)

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
        user = models.User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone or None,
            hashed_password=hashed_password,
            role="user",
            is_verified=is_verified,
        )
        with _translate_errors(self.db, "Email or phone already registered"):
            self.db.add(user)
            if commit:
                self.db.commit()
                self.db.refresh(user)
            else:
                self.db.flush()
        return user

    def touch_last_login(self, user: models.User) -> None:
        user.last_login = models.utcnow()
        with _translate_errors(self.db, "User update conflicted"):
            self.db.commit()

    def set_password(self, user: models.User, hashed_password: str) -> None:
        user.hashed_password = hashed_password
        with _translate_errors(self.db, "User update conflicted"):
            self.db.commit()

    def mark_verified(self, user: models.User) -> None:
        user.is_verified = True
        with _translate_errors(self.db, "User update conflicted"):
            self.db.commit()


class OtpRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_otp(
        self, *, user_id: int, code: str, otp_type: str, target: str, purpose: str, expires_at: datetime
    ) -> models.OtpCode:
        otp = models.OtpCode(
            user_id=user_id,
            code=code,
            type=otp_type,
            target=target,
            purpose=purpose,
            expires_at=expires_at,
            attempts=0,
            valid=True,
        )
        with _translate_errors(self.db, "An active code already exists for this purpose"):
            self.db.add(otp)
            self.db.commit()
            self.db.refresh(otp)
        return otp

    def find_flagged(self, *, user_id: int, otp_type: str, purpose: str) -> Optional[models.OtpCode]:
        """Latest code for the tuple whose validity flag is still set (it may have expired)."""
        return (
            self.db.query(models.OtpCode)
            .filter(
                models.OtpCode.user_id == user_id,
                models.OtpCode.type == otp_type,
                models.OtpCode.purpose == purpose,
                models.OtpCode.valid == True,  # noqa: E712
            )
            .order_by(models.OtpCode.created_at.desc(), models.OtpCode.id.desc())
            .first()
        )

    def find_for_verify(self, *, user_id: int, code: str, otp_type: str, purpose: str) -> Optional[models.OtpCode]:
        return (
            self.db.query(models.OtpCode)
            .filter(
                models.OtpCode.user_id == user_id,
                models.OtpCode.code == code,
                models.OtpCode.type == otp_type,
                models.OtpCode.purpose == purpose,
                models.OtpCode.valid == True,  # noqa: E712
            )
            .order_by(models.OtpCode.created_at.desc(), models.OtpCode.id.desc())
            .first()
        )

    def retire(self, otp: models.OtpCode) -> None:
        otp.valid = False
        with _translate_errors(self.db, "OTP update conflicted"):
            self.db.commit()

    def consume(self, otp: models.OtpCode) -> bool:
        """Mark ``otp`` used only if it is still live; False when another request consumed it first."""
        with _translate_errors(self.db, "OTP update conflicted"):
            updated = (
                self.db.query(models.OtpCode)
                .filter(
                    models.OtpCode.id == otp.id,
                    models.OtpCode.valid == True,  # noqa: E712
                    models.OtpCode.used_at.is_(None),
                )
                .update({"used_at": models.utcnow(), "valid": False}, synchronize_session=False)
            )
            self.db.commit()
        self.db.refresh(otp)
        return updated == 1

    def increment_attempts(self, otp: models.OtpCode, max_attempts: int) -> None:
        otp.increment_attempts(max_attempts)
        with _translate_errors(self.db, "OTP update conflicted"):
            self.db.commit()


class TokenRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_token(self, *, owner_id: int, token: str, token_type: str, expires_at: datetime, owner_type: str = "user") -> models.Token:
        record = models.Token(owner_id=owner_id, owner_type=owner_type, token=token, type=token_type, expires_at=expires_at)
        with _translate_errors(self.db, "Token already exists"):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        return record

    def get_by_token(self, token: str) -> Optional[models.Token]:
        return self.db.query(models.Token).filter(models.Token.token == token).first()

    def mark_used(self, token: models.Token) -> None:
        token.used_at = models.utcnow()
        with _translate_errors(self.db, "Token update conflicted"):
            self.db.commit()


class OAuthRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_link(self, provider: str, provider_id: str) -> Optional[models.OAuthAccount]:
        return (
            self.db.query(models.OAuthAccount)
            .filter(models.OAuthAccount.provider == provider, models.OAuthAccount.provider_id == provider_id)
            .first()
        )

    def create_link(self, *, user_id: int, provider: str, provider_id: str, commit: bool = True, **fields) -> models.OAuthAccount:
        link = models.OAuthAccount(user_id=user_id, provider=provider, provider_id=provider_id, **fields)
        with _translate_errors(self.db, "OAuth account already linked"):
            self.db.add(link)
            if commit:
                self.db.commit()
                self.db.refresh(link)
            else:
                self.db.flush()
        return link

    def update_tokens(self, link: models.OAuthAccount, **fields) -> None:
        for key, value in fields.items():
            setattr(link, key, value)
        with _translate_errors(self.db, "OAuth account update conflicted"):
            self.db.commit()

    def create_user_with_link(self, users: UserRepository, *, user_fields: dict, link_fields: dict) -> models.User:
        """Create a user and its first OAuth link in one transaction; neither survives a failure."""
        with _translate_errors(self.db, "Account or OAuth link already exists"):
            user = users.create_user(commit=False, **user_fields)
            self.create_link(user_id=user.id, commit=False, **link_fields)
            self.db.commit()
            self.db.refresh(user)
        return user
