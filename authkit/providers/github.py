from typing import Any, Dict, Optional, Tuple

from .base import OAuth2Provider, OAuthProfile, OAuthToken


class GitHubProvider(OAuth2Provider):
    name = "github"
    authorize_url = "https://github.com/login/oauth/authorize"
    token_url = "https://github.com/login/oauth/access_token"
    userinfo_url = "https://api.github.com/user"
    emails_url = "https://api.github.com/user/emails"
    default_scopes = ["read:user", "user:email"]

    def _primary_email(self, token: OAuthToken) -> Tuple[Optional[str], bool]:
        # /user only exposes a public email; private ones need /user/emails
        emails = self._get_json(self.emails_url, token.access_token) or []
        for entry in emails:
            if entry.get("primary"):
                return entry.get("email"), bool(entry.get("verified"))
        return None, False

    def parse_profile(self, data: Dict[str, Any], token: OAuthToken) -> OAuthProfile:
        email = data.get("email")
        verified = False
        if email is None:
            email, verified = self._primary_email(token)
        name = data.get("name") or data.get("login")
        first_name, _, last_name = (name or "").partition(" ")
        return OAuthProfile(
            provider_id=str(data["id"]),
            email=email,
            email_verified=verified,
            first_name=first_name or None,
            last_name=last_name or None,
            name=name,
            avatar_url=data.get("avatar_url"),
            raw=data,
        )
