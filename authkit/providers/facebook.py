from typing import Any, Dict, Optional

from .base import OAuth2Provider, OAuthProfile, OAuthToken


class FacebookProvider(OAuth2Provider):
    name = "facebook"
    authorize_url = "https://www.facebook.com/v19.0/dialog/oauth"
    token_url = "https://graph.facebook.com/v19.0/oauth/access_token"
    userinfo_url = "https://graph.facebook.com/me"
    default_scopes = ["email", "public_profile"]

    def userinfo_params(self) -> Optional[Dict[str, str]]:
        return {"fields": "id,email,first_name,last_name,name,picture"}

    def parse_profile(self, data: Dict[str, Any], token: OAuthToken) -> OAuthProfile:
        picture = (data.get("picture") or {}).get("data") or {}
        return OAuthProfile(
            provider_id=str(data["id"]),
            email=data.get("email"),
            # Graph API only returns confirmed addresses
            email_verified=bool(data.get("email")),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            name=data.get("name"),
            avatar_url=picture.get("url"),
            raw=data,
        )
