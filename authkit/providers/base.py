"""
OAuth2 authorization-code providers.

Each provider only declares its endpoints, default scopes and how to read its
user-info payload; the exchange and fetch logic is shared.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ..core.settings import OAuthProviderSettings
from ..domain.errors import ExchangeFailedError, ProfileFetchFailedError
from ..models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class OAuthToken:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def expires_at(self) -> Optional[datetime]:
        if not self.expires_in:
            return None
        return utcnow() + timedelta(seconds=int(self.expires_in))


@dataclass
class OAuthProfile:
    provider_id: str
    email: Optional[str]
    email_verified: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


class OAuth2Provider:
    name: str = ""
    authorize_url: str = ""
    token_url: str = ""
    userinfo_url: str = ""
    default_scopes: List[str] = []
    extra_authorize_params: Dict[str, str] = {}

    def __init__(self, config: OAuthProviderSettings, client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.config = config
        self.timeout = timeout
        self._client = client

    @property
    def scopes(self) -> List[str]:
        scopes = list(self.default_scopes)
        for scope in self.config.scopes:
            if scope not in scopes:
                scopes.append(scope)
        return scopes

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.callback_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        params.update(self.extra_authorize_params)
        return f"{self.authorize_url}?{urlencode(params)}"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        kwargs.setdefault("timeout", self.timeout)
        if self._client is not None:
            return self._client.request(method, url, **kwargs)
        with httpx.Client() as client:
            return client.request(method, url, **kwargs)

    def exchange_code(self, code: str) -> OAuthToken:
        data = {
            "code": code,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "redirect_uri": self.config.callback_url,
            "grant_type": "authorization_code",
        }
        try:
            response = self._request("POST", self.token_url, data=data, headers={"Accept": "application/json"})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[%s] code exchange failed: %s", self.name, exc)
            raise ExchangeFailedError(f"{self.name} code exchange failed") from exc

        access_token = payload.get("access_token")
        if not access_token:
            logger.warning("[%s] code exchange returned no access token: %s", self.name, payload.get("error"))
            raise ExchangeFailedError(f"{self.name} code exchange failed")
        return OAuthToken(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            raw=payload,
        )

    def _get_json(self, url: str, access_token: str, params: Optional[Dict[str, str]] = None) -> Any:
        response = self._request(
            "GET",
            url,
            params=params,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        response.raise_for_status()
        return response.json()

    def fetch_profile(self, token: OAuthToken) -> OAuthProfile:
        try:
            data = self._get_json(self.userinfo_url, token.access_token, self.userinfo_params())
            profile = self.parse_profile(data, token)
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.warning("[%s] profile fetch failed: %s", self.name, exc)
            raise ProfileFetchFailedError(f"failed to get {self.name} user info") from exc
        if not profile.email:
            raise ProfileFetchFailedError(f"{self.name} did not return an email address")
        return profile

    def userinfo_params(self) -> Optional[Dict[str, str]]:
        return None

    def parse_profile(self, data: Dict[str, Any], token: OAuthToken) -> OAuthProfile:
        raise NotImplementedError
