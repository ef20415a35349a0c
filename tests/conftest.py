"""
Pytest configuration and shared fixtures.

Every test gets its own in-memory SQLite database, so nothing touches a real
database file and tests never see each other's rows.
"""
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from authkit import models
from authkit.core.settings import Settings
from authkit.database import Database
from authkit.domain.repositories import OAuthRepository, OtpRepository, TokenRepository, UserRepository
from authkit.main import create_app
from authkit.security import get_password_hash
from authkit.services.auth_service import AuthService
from authkit.services.identity import IdentityResolver
from authkit.services.otp_service import OtpService
from authkit.services.token_service import OneTimeTokenService, TokenIssuer

TEST_SECRET = "test_secret_key_for_testing_only_at_least_32_bytes!"
TEST_PASSWORD = "pw123456"


class RecordingDispatcher:
    """Dispatcher that keeps everything it was asked to send."""

    def __init__(self):
        self.otps: List[models.OtpCode] = []
        self.password_resets: List[Tuple[str, str]] = []
        self.verifications: List[Tuple[str, str]] = []

    def send_otp(self, otp: models.OtpCode) -> None:
        self.otps.append(otp)

    def send_password_reset(self, email: str, token: str) -> None:
        self.password_resets.append((email, token))

    def send_email_verification(self, email: str, token: str) -> None:
        self.verifications.append((email, token))

    @property
    def last_code(self) -> str:
        return self.otps[-1].code


# =============================================================================
# Configuration and storage
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENV="dev",
        AUTH_SECRET_KEY=TEST_SECRET,
        DATABASE_URL="sqlite://",
        OTP_DEFAULT_REGION="ID",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    database = Database(settings.DATABASE_URL)
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Repositories and services
# =============================================================================

@pytest.fixture
def user_repo(db) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def otp_repo(db) -> OtpRepository:
    return OtpRepository(db)


@pytest.fixture
def token_repo(db) -> TokenRepository:
    return TokenRepository(db)


@pytest.fixture
def oauth_repo(db) -> OAuthRepository:
    return OAuthRepository(db)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def otp_service(otp_repo, settings, dispatcher) -> OtpService:
    return OtpService(otp_repo=otp_repo, settings=settings, dispatcher=dispatcher)


@pytest.fixture
def identity(user_repo, settings) -> IdentityResolver:
    return IdentityResolver(user_repo=user_repo, settings=settings)


@pytest.fixture
def auth_service(user_repo, otp_service, token_repo, identity, dispatcher, settings) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        otp_service=otp_service,
        tokens=OneTimeTokenService(token_repo=token_repo),
        identity=identity,
        dispatcher=dispatcher,
        settings=settings,
    )


@pytest.fixture
def token_issuer(settings) -> TokenIssuer:
    return TokenIssuer(settings)


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def make_user(user_repo):
    def _make_user(email="a@x.com", phone="+6281234567890", password=TEST_PASSWORD, role="user", **kwargs):
        is_active = kwargs.pop("is_active", True)
        user = user_repo.create_user(
            email=email,
            first_name=kwargs.pop("first_name", "Ann"),
            last_name=kwargs.pop("last_name", "Lee"),
            phone=phone,
            hashed_password=get_password_hash(password) if password else None,
            **kwargs,
        )
        if role != "user" or not is_active:
            user.role = role
            user.is_active = is_active
            user_repo.db.commit()
        return user

    return _make_user


@pytest.fixture
def user(make_user) -> models.User:
    return make_user()


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def app(settings, database, dispatcher):
    return create_app(settings, dispatcher=dispatcher, database=database)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def auth_header(token_issuer):
    def _auth_header(user: models.User) -> dict:
        token, _ = token_issuer.issue(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_header
