from typing import Any, Dict

from .base import OAuth2Provider, OAuthProfile, OAuthToken


class GoogleProvider(OAuth2Provider):
    name = "google"
    authorize_url = "https://accounts.google.com/o/oauth2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    userinfo_url = "https://www.googleapis.com/oauth2/v2/userinfo"
    default_scopes = [
        "https://www.googleapis.com/auth/userinfo.email",
        "https://www.googleapis.com/auth/userinfo.profile",
    ]
    extra_authorize_params = {"access_type": "offline"}

    def parse_profile(self, data: Dict[str, Any], token: OAuthToken) -> OAuthProfile:
        return OAuthProfile(
            provider_id=str(data["id"]),
            email=data.get("email"),
            email_verified=bool(data.get("verified_email", False)),
            first_name=data.get("given_name"),
            last_name=data.get("family_name"),
            name=data.get("name"),
            avatar_url=data.get("picture"),
            raw=data,
        )
