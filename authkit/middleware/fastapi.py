"""FastAPI dependencies for bearer authentication and role checks."""
from __future__ import annotations
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request

from ..domain.errors import AuthError
from ..services.token_service import TokenClaims, TokenIssuer
from .core import AuthGuard, status_for


class RequestContext:
    def __init__(self, request: Request):
        self.request = request

    def get_header(self, name: str) -> Optional[str]:
        return self.request.headers.get(name)

    def set_claims(self, claims: TokenClaims) -> None:
        self.request.state.user = claims

    def get_claims(self) -> Optional[TokenClaims]:
        return getattr(self.request.state, "user", None)


def _http_error(exc: AuthError) -> HTTPException:
    status_code = status_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return HTTPException(status_code=status_code, detail=str(exc), headers=headers)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_current_user(request: Request, issuer: TokenIssuer = Depends(get_token_issuer)) -> TokenClaims:
    ctx = RequestContext(request)
    existing = ctx.get_claims()
    if existing is not None:
        return existing
    try:
        return AuthGuard(issuer).authenticate(ctx)
    except AuthError as exc:
        raise _http_error(exc)


def require_roles(*roles: str) -> Callable[..., TokenClaims]:
    """Dependency factory: ``Depends(require_roles("admin"))``."""

    def dependency(
        request: Request,
        claims: TokenClaims = Depends(get_current_user),
        issuer: TokenIssuer = Depends(get_token_issuer),
    ) -> TokenClaims:
        try:
            return AuthGuard(issuer).authorize(RequestContext(request), roles)
        except AuthError as exc:
            raise _http_error(exc)

    return dependency


CurrentUser = Depends(get_current_user)
