"""
Unit tests for bearer token issuance and single-use opaque tokens.
"""
from datetime import timedelta

import pytest

from authkit import models
from authkit.domain.errors import TokenInvalidOrExpiredError, UnauthorizedError
from authkit.security import create_access_token
from authkit.services.token_service import OneTimeTokenService


class TestTokenIssuer:
    @pytest.mark.unit
    def test_issue_returns_token_and_lifetime(self, token_issuer, user, settings):
        token, expires_in = token_issuer.issue(user)

        assert isinstance(token, str) and len(token) > 50
        assert expires_in == settings.AUTH_ACCESS_TOKEN_EXPIRE_MINUTES * 60

    @pytest.mark.unit
    def test_claims_carry_identity(self, token_issuer, make_user):
        admin = make_user(email="boss@x.com", phone=None, role="admin", first_name="Bo", last_name="Ss")
        token, _ = token_issuer.issue(admin)
        claims = token_issuer.verify(token)

        assert claims.user_id == admin.id
        assert claims.email == "boss@x.com"
        assert claims.role == "admin"
        assert claims.first_name == "Bo"
        assert claims.last_name == "Ss"
        assert claims.is_verified is False
        assert claims.raw["sub"] == str(admin.id)
        assert claims.exp > claims.iat
        assert claims.has_role("admin", "staff")
        assert not claims.has_role("user")

    @pytest.mark.unit
    def test_role_is_fixed_at_issuance(self, token_issuer, user, user_repo):
        token, _ = token_issuer.issue(user)
        user.role = "admin"
        user_repo.db.commit()

        assert token_issuer.verify(token).role == "user"

    @pytest.mark.unit
    def test_expired_token(self, token_issuer, settings):
        token = create_access_token(
            {"user_id": 1, "email": "a@x.com", "role": "user"}, settings, expires_delta=timedelta(seconds=-5)
        )
        with pytest.raises(UnauthorizedError):
            token_issuer.verify(token)

    @pytest.mark.unit
    def test_garbage_token(self, token_issuer):
        with pytest.raises(UnauthorizedError):
            token_issuer.verify("not.a.jwt")

    @pytest.mark.unit
    def test_missing_claims(self, token_issuer, settings):
        token = create_access_token({"sub": "1"}, settings)
        with pytest.raises(UnauthorizedError):
            token_issuer.verify(token)


class TestOneTimeTokens:
    @pytest.mark.unit
    def test_issue_and_consume(self, token_repo, user):
        tokens = OneTimeTokenService(token_repo=token_repo)
        record = tokens.issue(user.id, "password_reset", timedelta(minutes=30))

        assert len(record.token) >= 40
        consumed = tokens.consume(record.token, "password_reset")
        assert consumed.owner_id == user.id
        assert consumed.used_at is not None

    @pytest.mark.unit
    def test_single_use(self, token_repo, user):
        tokens = OneTimeTokenService(token_repo=token_repo)
        record = tokens.issue(user.id, "password_reset", timedelta(minutes=30))
        tokens.consume(record.token, "password_reset")

        with pytest.raises(TokenInvalidOrExpiredError):
            tokens.consume(record.token, "password_reset")

    @pytest.mark.unit
    def test_type_must_match(self, token_repo, user):
        tokens = OneTimeTokenService(token_repo=token_repo)
        record = tokens.issue(user.id, "email_verify", timedelta(minutes=30))

        with pytest.raises(TokenInvalidOrExpiredError):
            tokens.consume(record.token, "password_reset")

    @pytest.mark.unit
    def test_expired(self, token_repo, user):
        tokens = OneTimeTokenService(token_repo=token_repo)
        record = tokens.issue(user.id, "password_reset", timedelta(minutes=30))
        record.expires_at = models.utcnow() - timedelta(seconds=1)
        token_repo.db.commit()

        with pytest.raises(TokenInvalidOrExpiredError):
            tokens.consume(record.token, "password_reset")

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", "unknown-token"])
    def test_unknown(self, token_repo, value):
        with pytest.raises(TokenInvalidOrExpiredError):
            OneTimeTokenService(token_repo=token_repo).consume(value, "password_reset")
