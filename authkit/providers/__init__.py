from typing import Dict, Optional, Type

import httpx

from ..core.settings import Settings
from ..domain.errors import ProviderNotConfiguredError
from .base import OAuth2Provider, OAuthProfile, OAuthToken
from .facebook import FacebookProvider
from .github import GitHubProvider
from .google import GoogleProvider

PROVIDER_CLASSES: Dict[str, Type[OAuth2Provider]] = {
    "google": GoogleProvider,
    "github": GitHubProvider,
    "facebook": FacebookProvider,
}


def build_providers(settings: Settings, client: Optional[httpx.Client] = None) -> Dict[str, OAuth2Provider]:
    """Instantiate every provider that is enabled in settings."""
    providers: Dict[str, OAuth2Provider] = {}
    for name, cls in PROVIDER_CLASSES.items():
        config = settings.oauth_provider(name)
        if config.enabled:
            providers[name] = cls(config, client=client)
    return providers


def get_provider(providers: Dict[str, OAuth2Provider], name: str) -> OAuth2Provider:
    provider = providers.get((name or "").lower())
    if provider is None:
        raise ProviderNotConfiguredError(f"OAuth provider '{name}' is not configured")
    return provider


__all__ = [
    "OAuth2Provider",
    "OAuthProfile",
    "OAuthToken",
    "GoogleProvider",
    "GitHubProvider",
    "FacebookProvider",
    "PROVIDER_CLASSES",
    "build_providers",
    "get_provider",
]
