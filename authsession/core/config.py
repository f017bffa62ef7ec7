"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the session cache and the
token refresher share a consistent configuration surface.
"""

from functools import lru_cache
from typing import Optional

from pydantic import AnyHttpUrl, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

_BASE_CONFIG = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    extra="ignore",
    populate_by_name=True,
)


class IdentityProviderSettings(BaseSettings):
    """Configuration required for talking to the OpenID-Connect provider."""

    model_config = _BASE_CONFIG

    client_id: str = Field(..., validation_alias="OIDC_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None,
        validation_alias="OIDC_CLIENT_SECRET",
        description="Only sent to the token endpoint when the client is confidential.",
    )
    token_url: AnyHttpUrl = Field(..., validation_alias="OIDC_TOKEN_URL")
    authorize_url: AnyHttpUrl = Field(..., validation_alias="OIDC_AUTHORIZE_URL")
    userinfo_url: AnyHttpUrl = Field(..., validation_alias="OIDC_USERINFO_URL")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="OIDC_REDIRECT_URI")
    logout_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="OIDC_LOGOUT_URL",
        description="Provider end-session endpoint, e.g. https://tenant.auth0.com/v2/logout.",
    )
    scopes: str = Field(
        "openid profile email offline_access",
        validation_alias="OIDC_SCOPES",
        description="Space separated scopes requested during login.",
    )
    timeout_seconds: float = Field(5.0, validation_alias="OIDC_TIMEOUT_SECONDS")


class CacheSettings(BaseSettings):
    """Settings for the session token cache."""

    model_config = _BASE_CONFIG

    redis_url: str = Field(
        "redis://localhost:6379/0",
        validation_alias="REDIS_URL",
        description="Leave empty to run on the in-process store only.",
    )
    session_ttl_seconds: int = Field(900, validation_alias="SESSION_TTL_SECONDS", gt=0)
    key_prefix: str = Field("session:", validation_alias="SESSION_KEY_PREFIX")
    timeout_seconds: float = Field(3.0, validation_alias="REDIS_TIMEOUT_SECONDS")


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = _BASE_CONFIG

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    state_secret: Optional[str] = Field(
        None,
        validation_alias="OAUTH_STATE_SECRET",
        description="Key for signing OAuth state. Defaults to the client secret.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = _BASE_CONFIG

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Optional URL for redirecting users back to the front-end.",
    )
    user_db_path: str = Field("data/users.sqlite3", validation_alias="USER_DB_PATH")
    identity_provider: IdentityProviderSettings = Field(
        default_factory=IdentityProviderSettings
    )
    cache: CacheSettings = Field(default_factory=CacheSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "CacheSettings",
    "IdentityProviderSettings",
    "OAuthSettings",
    "get_settings",
]
