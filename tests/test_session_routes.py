try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import copy
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from authsession.clients.memory_store import InMemorySessionStore
from authsession.main import app
from authsession.models.session import SessionRecord
from authsession.services.session_cache import SessionCache
from authsession.services.token_refresher import RefreshFailure, RefreshResult


class StubRefresher:
    def __init__(self, result: RefreshResult) -> None:
        self.result = result
        self.calls: list[str] = []

    async def refresh(self, user_id: str) -> RefreshResult:
        self.calls.append(user_id)
        return self.result


@pytest.fixture()
def session_overrides():
    from authsession import dependencies

    cache = SessionCache(None, InMemorySessionStore())
    refresher = StubRefresher(
        RefreshResult(record=SessionRecord(user_id="u1", access_token="AT2", refresh_token="RT1"))
    )

    app.dependency_overrides.update(
        {
            dependencies.get_session_cache: lambda: cache,
            dependencies.get_token_refresher: lambda: refresher,
        }
    )

    yield cache, refresher

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.mark.anyio
async def test_get_session_returns_token_pair(session_overrides):
    cache, _ = session_overrides
    await cache.save("u1", "AT1", "RT1")

    async with _client() as client:
        response = await client.get("/api/user/session", params={"user_id": "u1"})

    assert response.status_code == 200
    assert response.json() == {"accessToken": "AT1", "refreshToken": "RT1"}


@pytest.mark.anyio
async def test_get_session_returns_404_when_absent(session_overrides):
    async with _client() as client:
        response = await client.get("/api/user/session", params={"user_id": "missing"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Session not found."


@pytest.mark.anyio
async def test_refresh_returns_new_pair(session_overrides):
    _, refresher = session_overrides

    async with _client() as client:
        response = await client.post("/api/refresh-token", params={"user_id": "u1"})

    assert response.status_code == 200
    assert response.json() == {"accessToken": "AT2", "refreshToken": "RT1"}
    assert refresher.calls == ["u1"]


@pytest.mark.anyio
async def test_failed_refresh_is_unauthorized_with_reason(session_overrides):
    _, refresher = session_overrides
    refresher.result = RefreshResult(failure=RefreshFailure.IDENTITY_PROVIDER_REJECTED)

    async with _client() as client:
        response = await client.post("/api/refresh-token", params={"user_id": "u1"})

    assert response.status_code == 401
    assert response.json()["detail"] == {
        "error": "Failed to refresh token",
        "reason": "identity_provider_rejected",
    }


@pytest.mark.anyio
async def test_logout_removes_session(session_overrides):
    cache, _ = session_overrides
    await cache.save("u1", "AT1", "RT1")

    async with _client() as client:
        logout = await client.post("/api/logout", params={"user_id": "u1"})
        lookup = await client.get("/api/user/session", params={"user_id": "u1"})

    assert logout.status_code == 204
    assert lookup.status_code == 404


@pytest.mark.anyio
async def test_healthcheck():
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.json() == {"status": "ok", "primary_store": "disabled"}


class FakePrimaryStore:
    def __init__(self, answering: bool) -> None:
        self.answering = answering
        self.closed = False

    async def ping(self) -> bool:
        return self.answering

    async def close(self) -> None:
        self.closed = True


@pytest.mark.anyio
@pytest.mark.parametrize(("answering", "expected"), [(True, "up"), (False, "down")])
async def test_healthcheck_reports_primary_store_state(answering, expected):
    from authsession import dependencies

    app.dependency_overrides[dependencies.get_primary_session_store] = lambda: FakePrimaryStore(
        answering
    )
    try:
        async with _client() as client:
            response = await client.get("/api/health")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "primary_store": expected}


@pytest.mark.anyio
async def test_lifespan_closes_primary_store(monkeypatch):
    import authsession.main as main_module

    store = FakePrimaryStore(answering=False)
    monkeypatch.setattr(main_module, "get_primary_session_store", lambda: store)

    async with main_module.lifespan(app):
        assert store.closed is False

    assert store.closed is True


@pytest.fixture()
def provider_logout(session_overrides):
    from authsession import dependencies
    from authsession.clients.identity_provider import IdentityProviderClient
    from authsession.core.config import get_settings

    settings = copy.deepcopy(get_settings())
    settings.frontend_base_url = "https://app.example.com/"
    settings.identity_provider = settings.identity_provider.model_copy(
        update={"logout_url": "https://idp.example.com/v2/logout"}
    )
    app.dependency_overrides.update(
        {
            dependencies.get_app_settings: lambda: settings,
            dependencies.get_identity_provider_client: lambda: IdentityProviderClient(
                settings.identity_provider
            ),
        }
    )
    cache, _ = session_overrides
    return cache


@pytest.mark.anyio
async def test_logout_returns_provider_logout_url(provider_logout):
    cache = provider_logout
    await cache.save("u1", "AT1", "RT1")

    async with _client() as client:
        response = await client.post("/api/logout", params={"user_id": "u1"})

    assert response.status_code == 200
    logout_url = urlparse(response.json()["logout_url"])
    assert f"{logout_url.scheme}://{logout_url.netloc}{logout_url.path}" == (
        "https://idp.example.com/v2/logout"
    )
    assert parse_qs(logout_url.query) == {
        "client_id": ["test-client-id"],
        "returnTo": ["https://app.example.com/"],
    }
    assert await cache.get("u1") is None


@pytest.mark.anyio
async def test_logout_redirects_browsers_to_provider(provider_logout):
    cache = provider_logout
    await cache.save("u1", "AT1", "RT1")

    async with _client() as client:
        response = await client.post(
            "/api/logout",
            params={"user_id": "u1", "return_to": "https://app.example.com/bye"},
            headers={"accept": "text/html"},
        )

    assert response.status_code == 307
    location = urlparse(response.headers["location"])
    assert parse_qs(location.query)["returnTo"] == ["https://app.example.com/bye"]
    assert await cache.get("u1") is None
