from typing import Dict, List, Optional, Tuple
from time import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from . import schemas
from .core.deps import get_auth_service, get_oauth_service, get_settings, get_token_issuer
from .core.settings import Settings
from .cookies import clear_state_cookie, new_state, set_state_cookie, state_matches
from .middleware.fastapi import CurrentUser
from .services.auth_service import AuthService
from .services.oauth_service import OAuthService
from .services.token_service import TokenClaims, TokenIssuer
from .adapters.auth_adapter import (
    register_user_api,
    login_api,
    request_otp_api,
    verify_otp_api,
    request_password_reset_api,
    reset_password_api,
    request_email_verification_api,
    verify_email_api,
    oauth_authorization_url_api,
    oauth_callback_api,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_router() -> APIRouter:
    """Return the JSON auth APIRouter for integration into other FastAPI apps.

    The host app must expose the objects the dependencies read from
    ``app.state``; :func:`authkit.main.create_app` shows the full wiring.

    Example:

        from authkit.auth import get_auth_router

        app.include_router(get_auth_router())
    """
    return router


class LoginRateLimiter:
    """In-memory failed-login tracker keyed by (ip, identifier).

    Process-local; meant as a lightweight safeguard for single-node deployments.
    """

    def __init__(self, max_attempts: int = 5, window_seconds: float = 60.0):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._attempts: Dict[Tuple[str, str], List[float]] = {}

    @staticmethod
    def _key(ip: str, identifier: str) -> Tuple[str, str]:
        return (ip or "unknown", identifier.strip().lower())

    def _recent(self, key: Tuple[str, str], now: float) -> List[float]:
        attempts = [ts for ts in self._attempts.get(key, []) if now - ts <= self.window_seconds]
        if attempts:
            self._attempts[key] = attempts
        else:
            self._attempts.pop(key, None)
        return attempts

    def check(self, ip: str, identifier: str) -> None:
        if len(self._recent(self._key(ip, identifier), time())) >= self.max_attempts:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many login attempts. Please try again later.",
            )

    def record_failure(self, ip: str, identifier: str) -> None:
        key = self._key(ip, identifier)
        now = time()
        attempts = self._recent(key, now)
        attempts.append(now)
        self._attempts[key] = attempts

    def reset(self, ip: str, identifier: str) -> None:
        self._attempts.pop(self._key(ip, identifier), None)


def get_login_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_limiter


@router.post("/register", response_model=schemas.AuthResponse)
def register(
    payload: schemas.UserCreate,
    service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    return register_user_api(payload, service, issuer)


@router.post("/login", response_model=schemas.AuthResponse)
def login(
    request: Request,
    payload: schemas.UserLogin,
    service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    limiter: LoginRateLimiter = Depends(get_login_limiter),
):
    client_ip = request.client.host if request.client else ""
    limiter.check(client_ip, payload.identifier)
    try:
        result = login_api(payload, service, issuer)
    except HTTPException as exc:
        if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
            limiter.record_failure(client_ip, payload.identifier)
        raise

    limiter.reset(client_ip, payload.identifier)
    return result


@router.post("/request-otp", response_model=schemas.MessageResponse)
def request_otp(
    payload: schemas.RequestOtpRequest,
    service: AuthService = Depends(get_auth_service),
    cfg: Settings = Depends(get_settings),
):
    return request_otp_api(payload, service, cfg)


@router.post("/verify-otp")
def verify_otp(
    payload: schemas.VerifyOtpRequest,
    service: AuthService = Depends(get_auth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
    cfg: Settings = Depends(get_settings),
):
    """Login returns ``{token, user}``, reset_password ``{reset_token}``, verify ``{message}``."""
    return verify_otp_api(payload, service, issuer, cfg)


@router.post("/forgot-password", response_model=schemas.MessageResponse)
def forgot_password(payload: schemas.ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return request_password_reset_api(payload.email, service)


@router.post("/reset-password", response_model=schemas.MessageResponse)
def reset_password(payload: schemas.ResetPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return reset_password_api(payload, service)


@router.post("/request-email-verification", response_model=schemas.MessageResponse)
def request_email_verification(payload: schemas.ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    return request_email_verification_api(payload.email, service)


@router.post("/verify-email", response_model=schemas.MessageResponse)
def verify_email(payload: schemas.VerifyEmailRequest, service: AuthService = Depends(get_auth_service)):
    return verify_email_api(payload, service)


@router.get("/me", response_model=schemas.ClaimsOut)
def me(claims: TokenClaims = CurrentUser):
    return claims.to_dict()


@router.post("/logout", response_model=schemas.MessageResponse)
def logout():
    # Tokens are stateless; clients drop theirs and it expires on its own
    return {"message": "Logged out"}


@router.get("/{provider}")
def oauth_login(
    provider: str,
    service: OAuthService = Depends(get_oauth_service),
    cfg: Settings = Depends(get_settings),
):
    state = new_state()
    url = oauth_authorization_url_api(provider, state, service)
    response = RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    set_state_cookie(response, state, cfg)
    return response


@router.get("/{provider}/callback", response_model=schemas.AuthResponse)
def oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    service: OAuthService = Depends(get_oauth_service),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    if error:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Authorization denied: {error}")
    if not state_matches(request, state):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid OAuth state")
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing authorization code")

    response = JSONResponse(oauth_callback_api(provider, code, service, issuer))
    clear_state_cookie(response)
    return response
