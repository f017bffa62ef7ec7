"""Public schema exports."""

from .auth import OAuthCallbackPayload
from .session import SessionTokens

__all__ = [
    "OAuthCallbackPayload",
    "SessionTokens",
]
