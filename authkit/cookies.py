import secrets
from typing import Optional

from fastapi import Request
from fastapi.responses import Response

from .core.settings import Settings

OAUTH_STATE_COOKIE_NAME = "oauth_state"
OAUTH_STATE_MAX_AGE = 600


def new_state() -> str:
    return secrets.token_urlsafe(24)


def get_state_from_request(request: Request) -> Optional[str]:
    return request.cookies.get(OAUTH_STATE_COOKIE_NAME)


def state_matches(request: Request, state: Optional[str]) -> bool:
    expected = get_state_from_request(request)
    if not expected or not state:
        return False
    return secrets.compare_digest(expected, state)


def set_state_cookie(response: Response, state: str, settings: Settings) -> None:
    response.set_cookie(
        key=OAUTH_STATE_COOKIE_NAME,
        value=state,
        httponly=True,
        max_age=OAUTH_STATE_MAX_AGE,
        samesite=settings.AUTH_COOKIE_SAMESITE,
        secure=settings.AUTH_COOKIE_SECURE,
        path="/",
    )


def clear_state_cookie(response: Response) -> None:
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME, path="/")
