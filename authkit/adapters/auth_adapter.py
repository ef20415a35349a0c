from typing import Dict, Optional

from fastapi import HTTPException, status

from .. import models, schemas
from ..core.settings import Settings
from ..domain.errors import AuthError, NotFoundError, OtpInvalidOrExpiredError
from ..domain.results import OtpPurpose
from ..middleware.core import status_for
from ..services.auth_service import AuthService
from ..services.oauth_service import OAuthService
from ..services.token_service import TokenIssuer


def _http_error(exc: AuthError, overrides: Optional[Dict[type, int]] = None) -> HTTPException:
    status_code = status_for(exc)
    for exc_type, code in (overrides or {}).items():
        if isinstance(exc, exc_type):
            status_code = code
            break
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(status_code=status_code, detail=str(exc), headers=headers)


# Unknown identifiers must look exactly like bad credentials
_HIDE_MISSING_USER = {NotFoundError: status.HTTP_401_UNAUTHORIZED}


def user_payload(user: models.User) -> dict:
    return schemas.UserOut.model_validate(user).model_dump(mode="json")


def auth_response(user: models.User, issuer: TokenIssuer) -> dict:
    token, expires_in = issuer.issue(user)
    return {"token": token, "token_type": "bearer", "expires_in": expires_in, "user": user_payload(user)}


def register_user_api(payload: schemas.UserCreate, service: AuthService, issuer: TokenIssuer) -> dict:
    try:
        user = service.register(
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone=payload.phone,
            default_region=payload.default_region,
        )
    except AuthError as e:
        raise _http_error(e)
    return auth_response(user, issuer)


def login_api(payload: schemas.UserLogin, service: AuthService, issuer: TokenIssuer) -> dict:
    try:
        user = service.authenticate(payload.identifier, payload.password, payload.default_region)
    except AuthError as e:
        raise _http_error(e, _HIDE_MISSING_USER)
    return auth_response(user, issuer)


def request_otp_api(payload: schemas.RequestOtpRequest, service: AuthService, settings: Settings) -> dict:
    channel = payload.type or settings.OTP_DEFAULT_TYPE
    try:
        service.request_otp(payload.contact, channel, payload.purpose, payload.default_region)
    except AuthError as e:
        raise _http_error(e)
    return {"message": "OTP sent successfully"}


def verify_otp_api(payload: schemas.VerifyOtpRequest, service: AuthService, issuer: TokenIssuer, settings: Settings) -> dict:
    channel = payload.type or settings.OTP_DEFAULT_TYPE
    try:
        result = service.verify_otp(payload.contact, channel, payload.code, payload.purpose, payload.default_region)
    except NotFoundError:
        # A code for an unknown contact is just a wrong code
        raise _http_error(OtpInvalidOrExpiredError("Invalid or expired OTP"))
    except AuthError as e:
        raise _http_error(e)

    if result.purpose is OtpPurpose.LOGIN:
        return auth_response(result.user, issuer)
    if result.purpose is OtpPurpose.RESET_PASSWORD:
        return {"reset_token": result.reset_token}
    return {"message": "Account verified"}


def request_password_reset_api(email: str, service: AuthService) -> dict:
    try:
        service.forgot_password(email)
    except AuthError as e:
        raise _http_error(e)
    return {"message": "If the email exists, a reset link has been sent."}


def reset_password_api(payload: schemas.ResetPasswordRequest, service: AuthService) -> dict:
    try:
        service.reset_password(payload.token, payload.new_password)
    except AuthError as e:
        raise _http_error(e)
    return {"message": "Password has been reset"}


def request_email_verification_api(email: str, service: AuthService) -> dict:
    try:
        service.request_email_verification(email)
    except AuthError as e:
        raise _http_error(e)
    # Same answer for unknown, verified and pending accounts
    return {"message": "If the email exists, a verification link has been sent."}


def verify_email_api(payload: schemas.VerifyEmailRequest, service: AuthService) -> dict:
    try:
        service.verify_email(payload.token)
    except AuthError as e:
        raise _http_error(e)
    return {"message": "Email verified"}


def oauth_authorization_url_api(provider: str, state: str, service: OAuthService) -> str:
    try:
        return service.authorization_url(provider, state)
    except AuthError as e:
        raise _http_error(e)


def oauth_callback_api(provider: str, code: str, service: OAuthService, issuer: TokenIssuer) -> dict:
    try:
        user = service.handle_callback(provider, code)
    except AuthError as e:
        raise _http_error(e)
    return auth_response(user, issuer)
