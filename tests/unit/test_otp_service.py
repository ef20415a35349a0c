"""
Unit tests for the OTP engine.

Covers issuance, reuse and rotation, single use, expiry and attempt exhaustion.
"""
from datetime import timedelta

import pytest

from authkit import models
from authkit.domain.errors import ConflictError, InvalidChannelError, OtpInvalidOrExpiredError
from authkit.services.otp_service import generate_code


class TestGenerateCode:
    @pytest.mark.unit
    def test_default_length_is_six_digits(self):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()

    @pytest.mark.unit
    def test_custom_length(self):
        assert len(generate_code(8)) == 8

    @pytest.mark.unit
    def test_non_positive_length_falls_back_to_default(self):
        assert len(generate_code(0)) == 6


class TestOtpRequest:
    @pytest.mark.unit
    def test_issues_new_code(self, otp_service, user):
        result = otp_service.request(user.id, "email", "login", user.email)

        assert result.reused is False
        otp = result.otp
        assert len(otp.code) == 6 and otp.code.isdigit()
        assert otp.valid is True
        assert otp.attempts == 0
        assert otp.used_at is None
        assert otp.target == user.email
        assert otp.expires_at > models.utcnow()

    @pytest.mark.unit
    def test_expiry_follows_settings(self, otp_service, user, settings):
        before = models.utcnow()
        otp = otp_service.request(user.id, "sms", "login", user.phone).otp
        ttl = otp.expires_at - before

        assert timedelta(seconds=settings.OTP_EXPIRES_IN - 5) <= ttl <= timedelta(seconds=settings.OTP_EXPIRES_IN + 5)

    @pytest.mark.unit
    def test_reuses_active_code(self, otp_service, user):
        first = otp_service.request(user.id, "email", "login", user.email).otp
        second = otp_service.request(user.id, "email", "login", user.email)

        assert second.reused is True
        assert second.otp.id == first.id
        assert second.otp.code == first.code

    @pytest.mark.unit
    def test_codes_are_scoped_by_channel_and_purpose(self, otp_service, user):
        login = otp_service.request(user.id, "email", "login", user.email).otp
        sms = otp_service.request(user.id, "sms", "login", user.phone).otp
        verify = otp_service.request(user.id, "email", "verify", user.email).otp

        assert len({login.id, sms.id, verify.id}) == 3

    @pytest.mark.unit
    def test_rotation_policy_issues_new_code(self, otp_service, otp_repo, user, settings):
        settings.OTP_REUSE_ACTIVE = False
        first = otp_service.request(user.id, "email", "login", user.email).otp
        second = otp_service.request(user.id, "email", "login", user.email)

        assert second.reused is False
        assert second.otp.id != first.id
        otp_repo.db.refresh(first)
        assert first.valid is False

    @pytest.mark.unit
    def test_expired_code_is_replaced(self, otp_service, otp_repo, user):
        first = otp_service.request(user.id, "email", "login", user.email).otp
        first.expires_at = models.utcnow() - timedelta(seconds=1)
        otp_repo.db.commit()

        second = otp_service.request(user.id, "email", "login", user.email)

        assert second.reused is False
        assert second.otp.id != first.id
        otp_repo.db.refresh(first)
        assert first.valid is False

    @pytest.mark.unit
    def test_rejects_unknown_channel(self, otp_service, user):
        with pytest.raises(InvalidChannelError):
            otp_service.request(user.id, "pigeon", "login", user.email)

    @pytest.mark.unit
    def test_second_active_code_for_tuple_is_a_conflict(self, otp_repo, user):
        expires_at = models.utcnow() + timedelta(minutes=5)
        otp_repo.create_otp(
            user_id=user.id, code="111111", otp_type="email", target=user.email, purpose="login", expires_at=expires_at
        )
        with pytest.raises(ConflictError):
            otp_repo.create_otp(
                user_id=user.id, code="222222", otp_type="email", target=user.email, purpose="login", expires_at=expires_at
            )


class TestOtpVerify:
    @pytest.mark.unit
    def test_verify_marks_code_used(self, otp_service, otp_repo, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp

        assert otp_service.verify(user.id, otp.code, "email", "login") is True
        otp_repo.db.refresh(otp)
        assert otp.used_at is not None
        assert otp.valid is False

    @pytest.mark.unit
    def test_code_is_single_use(self, otp_service, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        otp_service.verify(user.id, otp.code, "email", "login")

        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, otp.code, "email", "login")

    @pytest.mark.unit
    def test_consume_succeeds_once_for_the_same_row(self, otp_service, otp_repo, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp

        assert otp_repo.consume(otp) is True
        assert otp_repo.consume(otp) is False
        assert otp.valid is False

    @pytest.mark.unit
    def test_code_consumed_by_another_request_fails(self, otp_service, otp_repo, user, monkeypatch):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        # The row is read as live, but a concurrent verify wins the update
        monkeypatch.setattr(otp_repo, "consume", lambda record: False)

        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, otp.code, "email", "login")

    @pytest.mark.unit
    def test_wrong_code_fails_and_leaves_active_code_untouched(self, otp_service, otp_repo, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        wrong = "000000" if otp.code != "000000" else "111111"

        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, wrong, "email", "login")

        otp_repo.db.refresh(otp)
        assert otp.attempts == 0
        assert otp.valid is True

    @pytest.mark.unit
    def test_purpose_must_match(self, otp_service, user):
        otp = otp_service.request(user.id, "email", "verify", user.email).otp

        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, otp.code, "email", "login")

    @pytest.mark.unit
    def test_expired_code_fails_without_counting_attempt(self, otp_service, otp_repo, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        otp.expires_at = models.utcnow() - timedelta(seconds=1)
        otp_repo.db.commit()

        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, otp.code, "email", "login")

        otp_repo.db.refresh(otp)
        assert otp.attempts == 0
        assert otp.used_at is None

    @pytest.mark.unit
    def test_exhausted_code_fails(self, otp_service, user, settings):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        for _ in range(settings.OTP_MAX_ATTEMPTS):
            otp_service.register_failed_attempt(otp)

        assert otp.attempts == settings.OTP_MAX_ATTEMPTS
        assert otp.valid is False
        with pytest.raises(OtpInvalidOrExpiredError):
            otp_service.verify(user.id, otp.code, "email", "login")

    @pytest.mark.unit
    def test_attempts_below_limit_still_verify(self, otp_service, user, settings):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        for _ in range(settings.OTP_MAX_ATTEMPTS - 1):
            otp_service.register_failed_attempt(otp)

        assert otp_service.verify(user.id, otp.code, "email", "login") is True

    @pytest.mark.unit
    def test_dispatch_hands_code_to_dispatcher(self, otp_service, dispatcher, user):
        otp = otp_service.request(user.id, "email", "login", user.email).otp
        otp_service.dispatch(otp)

        assert dispatcher.otps == [otp]
