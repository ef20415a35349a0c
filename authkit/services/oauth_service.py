from __future__ import annotations
from dataclasses import dataclass
import json
import logging
from typing import Dict

from .. import models
from ..core.logging import mask_contact
from ..domain.interfaces import UserRepositoryProtocol
from ..domain.repositories import OAuthRepository
from ..providers import OAuth2Provider, OAuthProfile, OAuthToken, get_provider
from .auth_service import ensure_active

logger = logging.getLogger(__name__)


@dataclass
class OAuthService:
    user_repo: UserRepositoryProtocol
    oauth_repo: OAuthRepository
    providers: Dict[str, OAuth2Provider]

    def authorization_url(self, provider_name: str, state: str) -> str:
        return get_provider(self.providers, provider_name).authorization_url(state)

    def handle_callback(self, provider_name: str, code: str) -> models.User:
        """Exchange ``code``, fetch the profile, then find, link or create the user."""
        provider = get_provider(self.providers, provider_name)
        token = provider.exchange_code(code)
        profile = provider.fetch_profile(token)
        user = self._resolve_user(provider.name, profile, token)
        ensure_active(user)
        self.user_repo.touch_last_login(user)
        return user

    def _link_fields(self, profile: OAuthProfile, token: OAuthToken) -> dict:
        return {
            "access_token": token.access_token,
            "refresh_token": token.refresh_token,
            "expires_at": token.expires_at,
            "email": profile.email,
            "name": profile.name,
            "avatar_url": profile.avatar_url,
            "data": json.dumps(profile.raw, default=str),
        }

    def _resolve_user(self, provider: str, profile: OAuthProfile, token: OAuthToken) -> models.User:
        link = self.oauth_repo.find_link(provider, profile.provider_id)
        if link is not None:
            fields = self._link_fields(profile, token)
            if not fields["refresh_token"]:
                # Providers often omit the refresh token on repeat consent
                fields.pop("refresh_token")
            self.oauth_repo.update_tokens(link, **fields)
            logger.info("[%s] existing link for user %s", provider, link.user_id)
            return link.user

        existing = self.user_repo.get_by_email(profile.email)
        if existing is not None:
            self.oauth_repo.create_link(
                user_id=existing.id,
                provider=provider,
                provider_id=profile.provider_id,
                **self._link_fields(profile, token),
            )
            logger.info("[%s] linked to existing account %s", provider, mask_contact(profile.email))
            return existing

        user = self.oauth_repo.create_user_with_link(
            self.user_repo,
            user_fields={
                "email": profile.email,
                "first_name": profile.first_name,
                "last_name": profile.last_name,
                "phone": None,
                "hashed_password": None,
                "is_verified": profile.email_verified,
            },
            link_fields={
                "provider": provider,
                "provider_id": profile.provider_id,
                **self._link_fields(profile, token),
            },
        )
        logger.info("[%s] created account %s", provider, mask_contact(profile.email))
        return user
