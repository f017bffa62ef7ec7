"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Optional

from authsession.clients import (
    IdentityProviderClient,
    InMemorySessionStore,
    OAuthStateEncoder,
    RedisSessionStore,
    UserProfileStore,
)
from authsession.core.config import get_settings
from authsession.services import AuthEventHandler, SessionCache, TokenRefresher


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the configured signing secret."""
    settings = _settings()
    secret = settings.oauth.state_secret or settings.identity_provider.client_secret
    if not secret:
        raise RuntimeError("OAUTH_STATE_SECRET or OIDC_CLIENT_SECRET must be configured.")
    return OAuthStateEncoder(secret_key=secret)


@lru_cache()
def get_identity_provider_client() -> IdentityProviderClient:
    """Create a singleton identity-provider client."""
    return IdentityProviderClient(_settings().identity_provider)


@lru_cache()
def get_primary_session_store() -> Optional[RedisSessionStore]:
    """Provide the Redis session store, or None when no Redis URL is set."""
    settings = _settings()
    if not settings.cache.redis_url:
        return None
    return RedisSessionStore(settings.cache)


@lru_cache()
def get_fallback_session_store() -> InMemorySessionStore:
    """Provide the process-wide in-memory session store."""
    return InMemorySessionStore()


@lru_cache()
def get_session_cache() -> SessionCache:
    """Provide the session cache wrapping both stores."""
    settings = _settings()
    return SessionCache(
        primary=get_primary_session_store(),
        fallback=get_fallback_session_store(),
        key_prefix=settings.cache.key_prefix,
    )


@lru_cache()
def get_token_refresher() -> TokenRefresher:
    """Provide the token refresher; a singleton so its per-user locks are shared."""
    return TokenRefresher(get_session_cache(), get_identity_provider_client())


@lru_cache()
def get_user_profile_store() -> UserProfileStore:
    """Provide the SQLite user profile store."""
    return UserProfileStore(_settings().user_db_path)


@lru_cache()
def get_auth_event_handler() -> AuthEventHandler:
    """Provide the login-success handler."""
    return AuthEventHandler(get_user_profile_store(), get_session_cache())
