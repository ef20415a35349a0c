"""ASGI middleware for plain Starlette apps (or any Starlette-based stack)."""
from __future__ import annotations
from functools import wraps
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..domain.errors import AuthError
from ..services.token_service import TokenClaims, TokenIssuer
from .core import AuthGuard, status_for


class StarletteRequestContext:
    def __init__(self, request: Request):
        self.request = request

    def get_header(self, name: str) -> Optional[str]:
        return self.request.headers.get(name)

    def set_claims(self, claims: TokenClaims) -> None:
        self.request.state.user = claims

    def get_claims(self) -> Optional[TokenClaims]:
        return getattr(self.request.state, "user", None)


def _error_response(exc: AuthError) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=status_for(exc))


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """Authenticates every request except ``exclude_paths``; optionally enforces ``roles``."""

    def __init__(self, app, issuer: TokenIssuer, roles: Optional[Iterable[str]] = None, exclude_paths: Iterable[str] = ()):
        super().__init__(app)
        self.guard = AuthGuard(issuer)
        self.roles = tuple(roles or ())
        self.exclude_paths = tuple(exclude_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exclude_paths:
            return await call_next(request)
        ctx = StarletteRequestContext(request)
        try:
            self.guard.authenticate(ctx)
            if self.roles:
                self.guard.authorize(ctx, self.roles)
        except AuthError as exc:
            return _error_response(exc)
        return await call_next(request)


def requires_roles(issuer: TokenIssuer, *roles: str):
    """Endpoint decorator for role checks behind :class:`BearerAuthMiddleware`."""
    guard = AuthGuard(issuer)

    def decorator(endpoint):
        @wraps(endpoint)
        async def wrapped(request: Request):
            try:
                guard.authorize(StarletteRequestContext(request), roles)
            except AuthError as exc:
                return _error_response(exc)
            return await endpoint(request)

        return wrapped

    return decorator
