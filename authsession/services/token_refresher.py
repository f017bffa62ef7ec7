"""
Exchange stored refresh tokens for new access tokens.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict, Optional

from authsession.clients.identity_provider import (
    IdentityProviderClient,
    OAuthTokenExchangeError,
    OAuthTransportError,
)
from authsession.models.session import SessionRecord
from authsession.services.session_cache import SessionCache

logger = logging.getLogger(__name__)


class RefreshFailure(str, Enum):
    """Why a refresh did not produce a new token pair."""

    REFRESH_TOKEN_MISSING = "refresh_token_missing"
    IDENTITY_PROVIDER_REJECTED = "identity_provider_rejected"
    TRANSPORT_FAILURE = "transport_failure"


@dataclass(frozen=True)
class RefreshResult:
    record: Optional[SessionRecord] = None
    failure: Optional[RefreshFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class KeyedLock:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class TokenRefresher:
    """Refresh a user's access token and write the new pair back to the cache.

    Calls for the same user are serialized and each one re-reads the session
    once it holds the lock, so a second caller works from whatever the first
    caller stored. Nothing is retried here.
    """

    def __init__(self, session_cache: SessionCache, oauth_client: IdentityProviderClient) -> None:
        self._cache = session_cache
        self._oauth = oauth_client
        self._locks = KeyedLock()

    async def refresh(self, user_id: str) -> RefreshResult:
        async with self._locks.hold(user_id):
            return await self._refresh_locked(user_id)

    async def _refresh_locked(self, user_id: str) -> RefreshResult:
        current = await self._cache.get(user_id)
        if current is None or not current.refresh_token:
            return RefreshResult(failure=RefreshFailure.REFRESH_TOKEN_MISSING)

        try:
            grant = await self._oauth.refresh_token(current.refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Identity provider rejected refresh for user %s (status %s)",
                user_id,
                exc.status_code,
            )
            return RefreshResult(failure=RefreshFailure.IDENTITY_PROVIDER_REJECTED)
        except OAuthTransportError as exc:
            logger.warning("Identity provider unreachable during refresh for user %s: %s", user_id, exc)
            return RefreshResult(failure=RefreshFailure.TRANSPORT_FAILURE)

        refresh_token = grant.refresh_token or current.refresh_token
        await self._cache.save(user_id, grant.access_token, refresh_token)
        logger.info(
            "Refreshed session for user %s (refresh token rotated: %s)",
            user_id,
            grant.refresh_token is not None,
        )
        return RefreshResult(
            record=SessionRecord(
                user_id=user_id, access_token=grant.access_token, refresh_token=refresh_token
            )
        )


__all__ = ["KeyedLock", "RefreshFailure", "RefreshResult", "TokenRefresher"]
