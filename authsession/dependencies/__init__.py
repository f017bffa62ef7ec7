"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_auth_event_handler,
    get_fallback_session_store,
    get_identity_provider_client,
    get_oauth_state_encoder,
    get_primary_session_store,
    get_session_cache,
    get_token_refresher,
    get_user_profile_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_auth_event_handler",
    "get_fallback_session_store",
    "get_identity_provider_client",
    "get_oauth_state_encoder",
    "get_primary_session_store",
    "get_session_cache",
    "get_token_refresher",
    "get_user_profile_store",
]
