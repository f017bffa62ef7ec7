"""Service layer exports."""

from .auth_events import AuthEventHandler
from .session_cache import SessionCache
from .token_refresher import RefreshFailure, RefreshResult, TokenRefresher

__all__ = [
    "AuthEventHandler",
    "RefreshFailure",
    "RefreshResult",
    "SessionCache",
    "TokenRefresher",
]
