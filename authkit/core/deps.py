from __future__ import annotations
from typing import Dict, Generator
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .settings import Settings
from ..domain.repositories import UserRepository, OtpRepository, TokenRepository, OAuthRepository
from ..domain.interfaces import UserRepositoryProtocol, OtpRepositoryProtocol, TokenRepositoryProtocol
from ..infrastructure.dispatch import DispatcherProtocol
from ..providers import OAuth2Provider
from ..services.auth_service import AuthService
from ..services.identity import IdentityResolver
from ..services.oauth_service import OAuthService
from ..services.otp_service import OtpService
from ..services.token_service import OneTimeTokenService
from ..middleware.fastapi import get_token_issuer  # noqa: F401  re-exported for routes


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.get_db()


def get_dispatcher(request: Request) -> DispatcherProtocol:
    return request.app.state.dispatcher


def get_oauth_providers(request: Request) -> Dict[str, OAuth2Provider]:
    return request.app.state.oauth_providers


def get_user_repo(db: Session = Depends(get_db)) -> UserRepositoryProtocol:
    return UserRepository(db)


def get_otp_repo(db: Session = Depends(get_db)) -> OtpRepositoryProtocol:
    return OtpRepository(db)


def get_token_repo(db: Session = Depends(get_db)) -> TokenRepositoryProtocol:
    return TokenRepository(db)


def get_identity_resolver(
    user_repo: UserRepositoryProtocol = Depends(get_user_repo),
    cfg: Settings = Depends(get_settings),
) -> IdentityResolver:
    return IdentityResolver(user_repo=user_repo, settings=cfg)


def get_otp_service(
    otp_repo: OtpRepositoryProtocol = Depends(get_otp_repo),
    dispatcher: DispatcherProtocol = Depends(get_dispatcher),
    cfg: Settings = Depends(get_settings),
) -> OtpService:
    return OtpService(otp_repo=otp_repo, settings=cfg, dispatcher=dispatcher)


def get_auth_service(
    user_repo: UserRepositoryProtocol = Depends(get_user_repo),
    otp_service: OtpService = Depends(get_otp_service),
    token_repo: TokenRepositoryProtocol = Depends(get_token_repo),
    identity: IdentityResolver = Depends(get_identity_resolver),
    dispatcher: DispatcherProtocol = Depends(get_dispatcher),
    cfg: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        otp_service=otp_service,
        tokens=OneTimeTokenService(token_repo=token_repo),
        identity=identity,
        dispatcher=dispatcher,
        settings=cfg,
    )


def get_oauth_service(
    db: Session = Depends(get_db),
    user_repo: UserRepositoryProtocol = Depends(get_user_repo),
    providers: Dict[str, OAuth2Provider] = Depends(get_oauth_providers),
) -> OAuthService:
    return OAuthService(user_repo=user_repo, oauth_repo=OAuthRepository(db), providers=providers)
