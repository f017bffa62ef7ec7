"""Expose constructed client wrappers."""

from .identity_provider import IdentityProviderClient, OAuthStateEncoder
from .memory_store import InMemorySessionStore
from .redis_store import RedisSessionStore
from .sqlite_store import UserProfileStore

__all__ = [
    "IdentityProviderClient",
    "InMemorySessionStore",
    "OAuthStateEncoder",
    "RedisSessionStore",
    "UserProfileStore",
]
