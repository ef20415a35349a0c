"""
Bearer-token and role checks, written once against a small request capability.

Framework adapters implement :class:`AuthContext` and turn the raised
``UnauthorizedError`` / ``ForbiddenError`` into their own short-circuit response.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional, Protocol

from ..domain.errors import AuthError, ForbiddenError, UnauthorizedError
from ..services.token_service import TokenClaims, TokenIssuer

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "invalid_input": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "conflict": 409,
    "upstream": 500,
}


def status_for(exc: AuthError) -> int:
    return STATUS_BY_KIND.get(exc.kind, 500)


class AuthContext(Protocol):
    def get_header(self, name: str) -> Optional[str]:
        ...

    def set_claims(self, claims: TokenClaims) -> None:
        ...

    def get_claims(self) -> Optional[TokenClaims]:
        ...


def extract_bearer(header: Optional[str]) -> str:
    if not header:
        raise UnauthorizedError("Authorization header is required")
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Authorization header format must be Bearer TOKEN")
    return parts[1]


class AuthGuard:
    def __init__(self, issuer: TokenIssuer):
        self.issuer = issuer

    def authenticate(self, ctx: AuthContext) -> TokenClaims:
        token = extract_bearer(ctx.get_header("Authorization"))
        try:
            claims = self.issuer.verify(token)
        except UnauthorizedError:
            logger.info("Rejected bearer token")
            raise UnauthorizedError("Invalid or expired token") from None
        ctx.set_claims(claims)
        return claims

    def authorize(self, ctx: AuthContext, roles: Iterable[str]) -> TokenClaims:
        claims = ctx.get_claims()
        if claims is None:
            raise UnauthorizedError("User not authenticated")
        if not claims.role:
            raise ForbiddenError("User has no role assigned")
        allowed = set(roles)
        if claims.role not in allowed:
            logger.info("User %s with role %r denied (needs one of %s)", claims.user_id, claims.role, sorted(allowed))
            raise ForbiddenError("User does not have the required role")
        return claims
