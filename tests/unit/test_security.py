"""
Unit tests for password hashing, password policy and JWT helpers.
"""
from datetime import timedelta

import pytest

from authkit.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    validate_password_policy,
    verify_password,
)


class TestPasswordHashing:
    @pytest.mark.unit
    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("pw123456")

        assert hashed != "pw123456"
        assert verify_password("pw123456", hashed) is True

    @pytest.mark.unit
    def test_wrong_password(self):
        assert verify_password("wrong-pass", get_password_hash("pw123456")) is False

    @pytest.mark.unit
    def test_missing_hash_never_verifies(self):
        assert verify_password("pw123456", None) is False
        assert verify_password("pw123456", "") is False

    @pytest.mark.unit
    def test_malformed_hash_never_verifies(self):
        assert verify_password("pw123456", "not-a-hash") is False


class TestPasswordPolicy:
    @pytest.mark.unit
    def test_accepts_eight_characters(self):
        assert validate_password_policy("pw123456") is None

    @pytest.mark.unit
    def test_rejects_short(self):
        assert "at least" in validate_password_policy("pw1")

    @pytest.mark.unit
    def test_rejects_whitespace(self):
        assert validate_password_policy("pw 123456") is not None

    @pytest.mark.unit
    def test_rejects_too_long(self):
        assert validate_password_policy("x" * 129) is not None


class TestJwt:
    @pytest.mark.unit
    def test_round_trip(self, settings):
        token = create_access_token({"sub": "1", "role": "admin"}, settings)
        payload = decode_token(token, settings)

        assert payload["sub"] == "1"
        assert payload["role"] == "admin"
        assert "jti" in payload and "iat" in payload and "exp" in payload

    @pytest.mark.unit
    def test_expired_token_is_rejected(self, settings):
        token = create_access_token({"sub": "1"}, settings, expires_delta=timedelta(seconds=-10))
        assert decode_token(token, settings) is None

    @pytest.mark.unit
    def test_other_secret_is_rejected(self, settings):
        token = create_access_token({"sub": "1"}, settings)
        other = settings.model_copy(update={"AUTH_SECRET_KEY": "another_secret_key_that_is_long_enough!!"})

        assert decode_token(token, other) is None

    @pytest.mark.unit
    def test_issuer_is_enforced_when_configured(self, settings):
        issued = settings.model_copy(update={"AUTH_ISSUER": "authkit-tests"})
        token = create_access_token({"sub": "1"}, issued)

        assert decode_token(token, issued)["iss"] == "authkit-tests"
        assert decode_token(create_access_token({"sub": "1"}, settings), issued) is None
