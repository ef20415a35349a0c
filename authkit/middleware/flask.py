"""
Flask decorators for bearer authentication and role checks.

    guard = FlaskAuth(TokenIssuer(settings))

    @app.get("/admin")
    @guard.roles_required("admin")
    def admin():
        return {"user": g.user.email}
"""
from __future__ import annotations
from functools import wraps
from typing import Optional

from flask import g, jsonify, request

from ..domain.errors import AuthError
from ..services.token_service import TokenClaims, TokenIssuer
from .core import AuthGuard, status_for


class FlaskRequestContext:
    def get_header(self, name: str) -> Optional[str]:
        return request.headers.get(name)

    def set_claims(self, claims: TokenClaims) -> None:
        g.user = claims

    def get_claims(self) -> Optional[TokenClaims]:
        return g.get("user")


def _error_response(exc: AuthError):
    return jsonify(error=str(exc)), status_for(exc)


class FlaskAuth:
    def __init__(self, issuer: TokenIssuer):
        self.guard = AuthGuard(issuer)

    def login_required(self, f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            try:
                self.guard.authenticate(FlaskRequestContext())
            except AuthError as exc:
                return _error_response(exc)
            return f(*args, **kwargs)

        return wrapped

    def roles_required(self, *roles: str):
        # Support passing a single list/tuple as well
        if len(roles) == 1 and isinstance(roles[0], (list, tuple, set)):
            roles = tuple(roles[0])

        def decorator(f):
            @wraps(f)
            def wrapped(*args, **kwargs):
                ctx = FlaskRequestContext()
                try:
                    if ctx.get_claims() is None:
                        self.guard.authenticate(ctx)
                    self.guard.authorize(ctx, roles)
                except AuthError as exc:
                    return _error_response(exc)
                return f(*args, **kwargs)

            return wrapped

        return decorator
