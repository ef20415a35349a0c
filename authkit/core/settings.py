from __future__ import annotations
from dataclasses import dataclass
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from datetime import timedelta
from typing import List, Optional


OTP_CHANNELS = ("email", "sms", "whatsapp")


@dataclass(frozen=True)
class OAuthProviderSettings:
    name: str
    enabled: bool
    client_id: str
    client_secret: str
    callback_url: str
    scopes: List[str]


@dataclass(frozen=True)
class ChannelSettings:
    enabled: bool
    api_url: str
    api_key: str
    sender: str


class Settings(BaseSettings):
    # Environment
    ENV: str = Field(default="dev")
    LOG_LEVEL: str = Field(default="INFO")

    # Security
    AUTH_SECRET_KEY: str = Field(default="change-this-secret")
    AUTH_ALGORITHM: str = Field(default="HS256")
    AUTH_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    AUTH_RESET_TOKEN_EXPIRE_MINUTES: int = Field(default=30)
    AUTH_VERIFY_TOKEN_EXPIRE_MINUTES: int = Field(default=1440)

    # Optional JWT metadata
    AUTH_ISSUER: Optional[str] = Field(default=None)

    # Cookie settings (OAuth state)
    AUTH_COOKIE_SECURE: bool = Field(default=False)
    AUTH_COOKIE_SAMESITE: str = Field(default="lax")

    # Login rate limiting (process-local)
    AUTH_LOGIN_MAX_ATTEMPTS: int = Field(default=5)
    AUTH_LOGIN_WINDOW_SECONDS: float = Field(default=60.0)

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./authkit.db")
    DATABASE_AUTO_CREATE: bool = Field(default=True)

    # OTP
    OTP_DEFAULT_TYPE: str = Field(default="email")
    OTP_LENGTH: int = Field(default=6, ge=4, le=10)
    OTP_EXPIRES_IN: int = Field(default=300)  # seconds
    OTP_MAX_ATTEMPTS: int = Field(default=5)
    OTP_REUSE_ACTIVE: bool = Field(default=True)
    OTP_DEFAULT_REGION: str = Field(default="ID")
    OTP_MESSAGE_TEMPLATE: str = Field(default="Your OTP code is: {code}. It is valid for {expires_in} seconds.")

    OTP_EMAIL_ENABLED: bool = Field(default=False)

    OTP_SMS_ENABLED: bool = Field(default=False)
    OTP_SMS_API_URL: str = Field(default="")
    OTP_SMS_API_KEY: str = Field(default="")
    OTP_SMS_SENDER: str = Field(default="")

    OTP_WHATSAPP_ENABLED: bool = Field(default=False)
    OTP_WHATSAPP_API_URL: str = Field(default="")
    OTP_WHATSAPP_API_KEY: str = Field(default="")
    OTP_WHATSAPP_SENDER: str = Field(default="")

    # SMTP
    SMTP_HOST: str = Field(default="smtp.gmail.com")
    SMTP_PORT: int = Field(default=587)
    SMTP_USER: str = Field(default="")
    SMTP_PASSWORD: str = Field(default="")
    SMTP_FROM: Optional[str] = Field(default=None)
    SMTP_FROM_NAME: str = Field(default="Auth App")

    # OAuth providers
    GOOGLE_ENABLED: bool = Field(default=False)
    GOOGLE_CLIENT_ID: str = Field(default="")
    GOOGLE_CLIENT_SECRET: str = Field(default="")
    GOOGLE_CALLBACK_URL: str = Field(default="")
    GOOGLE_SCOPES: List[str] = Field(default_factory=list)

    GITHUB_ENABLED: bool = Field(default=False)
    GITHUB_CLIENT_ID: str = Field(default="")
    GITHUB_CLIENT_SECRET: str = Field(default="")
    GITHUB_CALLBACK_URL: str = Field(default="")
    GITHUB_SCOPES: List[str] = Field(default_factory=list)

    FACEBOOK_ENABLED: bool = Field(default=False)
    FACEBOOK_CLIENT_ID: str = Field(default="")
    FACEBOOK_CLIENT_SECRET: str = Field(default="")
    FACEBOOK_CALLBACK_URL: str = Field(default="")
    FACEBOOK_SCOPES: List[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def access_token_expire_delta(self) -> timedelta:
        return timedelta(minutes=int(self.AUTH_ACCESS_TOKEN_EXPIRE_MINUTES))

    @property
    def otp_expire_delta(self) -> timedelta:
        return timedelta(seconds=int(self.OTP_EXPIRES_IN))

    @property
    def reset_token_expire_delta(self) -> timedelta:
        return timedelta(minutes=int(self.AUTH_RESET_TOKEN_EXPIRE_MINUTES))

    @property
    def verify_token_expire_delta(self) -> timedelta:
        return timedelta(minutes=int(self.AUTH_VERIFY_TOKEN_EXPIRE_MINUTES))

    @property
    def is_dev(self) -> bool:
        return self.ENV.lower() == "dev"

    @property
    def is_stage(self) -> bool:
        return self.ENV.lower() == "stage"

    @property
    def is_prod(self) -> bool:
        return self.ENV.lower() == "prod"

    def oauth_provider(self, name: str) -> OAuthProviderSettings:
        """Return the flat ``<NAME>_*`` settings of an OAuth provider as one object."""
        prefix = name.upper()
        try:
            return OAuthProviderSettings(
                name=name.lower(),
                enabled=getattr(self, f"{prefix}_ENABLED"),
                client_id=getattr(self, f"{prefix}_CLIENT_ID"),
                client_secret=getattr(self, f"{prefix}_CLIENT_SECRET"),
                callback_url=getattr(self, f"{prefix}_CALLBACK_URL"),
                scopes=list(getattr(self, f"{prefix}_SCOPES")),
            )
        except AttributeError:
            raise KeyError(name) from None

    def channel(self, channel: str) -> ChannelSettings:
        """Transport settings for the sms and whatsapp OTP channels."""
        prefix = f"OTP_{channel.upper()}"
        return ChannelSettings(
            enabled=getattr(self, f"{prefix}_ENABLED"),
            api_url=getattr(self, f"{prefix}_API_URL", ""),
            api_key=getattr(self, f"{prefix}_API_KEY", ""),
            sender=getattr(self, f"{prefix}_SENDER", ""),
        )

    def validate_for_runtime(self) -> None:
        """Perform basic security checks based on the current environment.

        In non-dev environments this will raise if critical security settings are unsafe
        (e.g. default secret key, insecure cookies).
        """
        if self.is_dev:
            return

        if not self.AUTH_SECRET_KEY or self.AUTH_SECRET_KEY == "change-this-secret" or len(self.AUTH_SECRET_KEY) < 32:
            raise RuntimeError(
                "AUTH_SECRET_KEY is not set to a strong value. "
                "Set a long, random secret in your environment for non-dev deployments."
            )

        if not self.AUTH_COOKIE_SECURE:
            raise RuntimeError(
                "AUTH_COOKIE_SECURE must be True in non-dev environments to prevent auth cookies "
                "from being sent over insecure HTTP."
            )

        if self.OTP_DEFAULT_TYPE not in OTP_CHANNELS:
            raise RuntimeError(f"OTP_DEFAULT_TYPE must be one of {', '.join(OTP_CHANNELS)}")
