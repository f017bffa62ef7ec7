"""
Redis-backed primary store for cached session tokens.

Every operation reports its outcome as a ``StoreResult`` rather than raising,
so callers decide how to degrade when Redis cannot be reached.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from authsession.core.config import CacheSettings
from authsession.models.session import SessionRecord, StoreResult

logger = logging.getLogger(__name__)

# Connectivity, timeouts and (de)serialization problems all count as the
# backend being unavailable.
_BACKEND_ERRORS = (RedisError, OSError, ValueError, TypeError)


class RedisSessionStore:
    """Store session payloads as JSON strings with a per-key expiration."""

    def __init__(self, settings: CacheSettings, client: Optional[Any] = None) -> None:
        self._ttl_seconds = settings.session_ttl_seconds
        self._client = client or redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.timeout_seconds,
            socket_connect_timeout=settings.timeout_seconds,
            health_check_interval=30,
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def set(self, key: str, record: SessionRecord) -> StoreResult:
        try:
            await self._client.set(key, json.dumps(record.to_payload()), ex=self._ttl_seconds)
        except _BACKEND_ERRORS as exc:
            return StoreResult.unavailable(_describe(exc))
        return StoreResult.ok(record)

    async def get(self, key: str, *, user_id: str) -> StoreResult:
        try:
            raw = await self._client.get(key)
            if raw is None:
                return StoreResult.ok()
            record = SessionRecord.from_payload(user_id, json.loads(raw))
        except _BACKEND_ERRORS as exc:
            return StoreResult.unavailable(_describe(exc))
        return StoreResult.ok(record)

    async def delete(self, key: str) -> StoreResult:
        try:
            await self._client.delete(key)
        except _BACKEND_ERRORS as exc:
            return StoreResult.unavailable(_describe(exc))
        return StoreResult.ok()

    async def ping(self) -> bool:
        """Check whether Redis is currently answering."""
        try:
            return bool(await self._client.ping())
        except _BACKEND_ERRORS:
            return False

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Redis session store closed")


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


__all__ = ["RedisSessionStore"]
