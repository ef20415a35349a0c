from .main import create_app
from .auth import router as auth_router, get_auth_router
from .services.auth_service import AuthService
from .services.oauth_service import OAuthService
from .services.token_service import TokenClaims, TokenIssuer
from .core.settings import Settings
from .database import Database

__all__ = [
    "create_app",
    "auth_router",
    "get_auth_router",
    "AuthService",
    "OAuthService",
    "TokenClaims",
    "TokenIssuer",
    "Settings",
    "Database",
]
