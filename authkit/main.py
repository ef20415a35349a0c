import logging
from typing import Optional

import httpx
from fastapi import FastAPI

from .auth import LoginRateLimiter, router as auth_router
from .core.logging import configure_logging
from .core.settings import Settings
from .database import Database
from .infrastructure.dispatch import DispatcherProtocol, OtpDispatcher
from .providers import build_providers
from .services.token_service import TokenIssuer

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[DispatcherProtocol] = None,
    http_client: Optional[httpx.Client] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build the auth API with everything it needs stored on ``app.state``."""
    settings = settings or Settings()
    configure_logging(settings)
    # Validate configuration for the current runtime environment
    settings.validate_for_runtime()

    database = database or Database(settings.DATABASE_URL)
    if settings.DATABASE_AUTO_CREATE:
        database.create_all()

    app = FastAPI(title="Auth API", version="1.0.0")
    app.state.settings = settings
    app.state.database = database
    app.state.token_issuer = TokenIssuer(settings)
    app.state.dispatcher = dispatcher or OtpDispatcher(settings)
    app.state.oauth_providers = build_providers(settings, client=http_client)
    app.state.login_limiter = LoginRateLimiter(
        max_attempts=settings.AUTH_LOGIN_MAX_ATTEMPTS,
        window_seconds=settings.AUTH_LOGIN_WINDOW_SECONDS,
    )

    app.include_router(auth_router)
    logger.info(
        "authkit ready (env=%s, oauth providers: %s)",
        settings.ENV,
        ", ".join(sorted(app.state.oauth_providers)) or "none",
    )
    return app
