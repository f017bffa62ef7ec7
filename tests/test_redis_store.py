from __future__ import annotations

import json

import pytest
from redis.exceptions import TimeoutError as RedisTimeoutError

from authsession.clients.redis_store import RedisSessionStore
from authsession.core.config import CacheSettings
from authsession.models.session import SessionRecord, StoreStatus


class RecordingRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.set_calls: list[tuple[str, str, int | None]] = []
        self.error: Exception | None = None
        self.closed = False

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        if self.error:
            raise self.error
        self.set_calls.append((key, value, ex))
        self.data[key] = value
        return True

    async def get(self, key: str) -> str | None:
        if self.error:
            raise self.error
        return self.data.get(key)

    async def delete(self, key: str) -> int:
        if self.error:
            raise self.error
        return 1 if self.data.pop(key, None) is not None else 0

    async def ping(self) -> bool:
        if self.error:
            raise self.error
        return True

    async def aclose(self) -> None:
        self.closed = True


def _store(client: RecordingRedis, ttl: int = 900) -> RedisSessionStore:
    settings = CacheSettings(REDIS_URL="redis://unused", SESSION_TTL_SECONDS=ttl)
    return RedisSessionStore(settings, client=client)


@pytest.mark.asyncio
async def test_set_writes_json_with_ttl() -> None:
    client = RecordingRedis()
    store = _store(client, ttl=900)
    record = SessionRecord(user_id="u1", access_token="AT1", refresh_token="RT1")

    result = await store.set("session:u1", record)

    assert result.status is StoreStatus.OK
    key, value, ex = client.set_calls[0]
    assert key == "session:u1"
    assert ex == 900
    assert json.loads(value) == {"accessToken": "AT1", "refreshToken": "RT1"}


@pytest.mark.asyncio
async def test_get_missing_key_is_ok_without_record() -> None:
    store = _store(RecordingRedis())

    result = await store.get("session:nobody", user_id="nobody")

    assert result.is_ok
    assert result.record is None


@pytest.mark.asyncio
async def test_get_rebuilds_record_for_user() -> None:
    client = RecordingRedis()
    client.data["session:u1"] = json.dumps({"accessToken": None, "refreshToken": "RT1"})
    store = _store(client)

    result = await store.get("session:u1", user_id="u1")

    assert result.record == SessionRecord(user_id="u1", access_token=None, refresh_token="RT1")


@pytest.mark.asyncio
async def test_backend_errors_become_unavailable_results() -> None:
    client = RecordingRedis()
    client.error = RedisTimeoutError("Timeout reading from socket")
    store = _store(client)
    record = SessionRecord(user_id="u1", access_token="AT1")

    for result in (
        await store.set("session:u1", record),
        await store.get("session:u1", user_id="u1"),
        await store.delete("session:u1"),
    ):
        assert result.status is StoreStatus.UNAVAILABLE
        assert "TimeoutError" in result.error

    assert await store.ping() is False


@pytest.mark.asyncio
async def test_os_level_connection_failure_is_unavailable() -> None:
    client = RecordingRedis()
    client.error = ConnectionRefusedError(111, "Connection refused")
    store = _store(client)

    result = await store.get("session:u1", user_id="u1")

    assert result.status is StoreStatus.UNAVAILABLE


@pytest.mark.asyncio
async def test_ping_and_close() -> None:
    client = RecordingRedis()
    store = _store(client)

    assert await store.ping() is True
    await store.close()
    assert client.closed


def test_client_is_built_from_settings_without_connecting() -> None:
    settings = CacheSettings(
        REDIS_URL="redis://cache.internal:6380/2",
        SESSION_TTL_SECONDS=60,
        REDIS_TIMEOUT_SECONDS=2.5,
    )

    store = RedisSessionStore(settings)

    assert store.ttl_seconds == 60
    kwargs = store._client.connection_pool.connection_kwargs
    assert kwargs["host"] == "cache.internal"
    assert kwargs["port"] == 6380
    assert kwargs["db"] == 2
    assert kwargs["socket_timeout"] == 2.5
    assert kwargs["socket_connect_timeout"] == 2.5
