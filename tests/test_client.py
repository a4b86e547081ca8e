from datetime import datetime, timezone

import httpx
import pytest

from plan_gate.client import (
    ARTICLES_COUNT_PATH,
    ENTITLEMENT_PATH,
    IMAGE_USAGE_PATH,
    PlanGateClient,
)
from plan_gate.errors import BackendRequestError, SyncFailure


def _client(routes, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        path = request.url.path.removeprefix("/api")
        route = routes.get(path)
        if route is None:
            return httpx.Response(404, json={"success": False})
        if isinstance(route, Exception):
            raise route
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    return PlanGateClient(
        "https://backend.test/api",
        api_token="secret-token",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_entitlement_parses_payload_verbatim():
    routes = {
        ENTITLEMENT_PATH: (200, {
            "success": True,
            "data": {
                "plan": "pro",
                "expiresAt": "2026-04-01T00:00:00Z",
                "isPro": True,
                "isExpired": False,
            },
        }),
    }
    seen = []
    async with _client(routes, seen) as client:
        state = await client.fetch_entitlement()

    assert state.plan == "pro"
    assert state.is_pro is True
    assert state.is_expired is False
    assert state.is_loading is False
    assert state.expires_at == datetime(2026, 4, 1, tzinfo=timezone.utc)
    assert seen[0].url.path == "/api/entitlement"
    assert seen[0].headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_fetch_entitlement_keeps_inconsistent_flags():
    """Flags are not re-derived from plan/expiry."""
    routes = {
        ENTITLEMENT_PATH: (200, {
            "success": True,
            "data": {"plan": "free", "expiresAt": None, "isPro": True, "isExpired": True},
        }),
    }
    async with _client(routes) as client:
        state = await client.fetch_entitlement()

    assert state.plan == "free"
    assert state.is_pro is True
    assert state.is_expired is True


@pytest.mark.asyncio
async def test_naive_expiry_is_treated_as_utc():
    routes = {
        ENTITLEMENT_PATH: (200, {
            "success": True,
            "data": {"plan": "pro", "planExpiredAt": "2026-04-01T08:30:00", "isPro": True, "isExpired": False},
        }),
    }
    async with _client(routes) as client:
        state = await client.fetch_entitlement()

    assert state.expires_at == datetime(2026, 4, 1, 8, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_usage_counters():
    routes = {
        ARTICLES_COUNT_PATH: (200, {"success": True, "data": {"total": 4}}),
        IMAGE_USAGE_PATH: (200, {"success": True, "data": {"monthlyUsed": 17}}),
    }
    async with _client(routes) as client:
        assert await client.fetch_article_count() == 4
        assert await client.fetch_monthly_image_usage() == 17


@pytest.mark.asyncio
async def test_success_false_is_sync_failure():
    routes = {ENTITLEMENT_PATH: (200, {"success": False, "data": None})}
    async with _client(routes) as client:
        with pytest.raises(SyncFailure, match="success=false"):
            await client.fetch_entitlement()


@pytest.mark.asyncio
async def test_http_error_is_backend_request_error():
    routes = {IMAGE_USAGE_PATH: (503, {"success": False})}
    async with _client(routes) as client:
        with pytest.raises(BackendRequestError) as exc:
            await client.fetch_monthly_image_usage()

    assert exc.value.status_code == 503
    assert exc.value.to_dict()["error"] == "BACKEND_REQUEST_FAILED"


@pytest.mark.asyncio
async def test_transport_error_is_backend_request_error():
    routes = {ARTICLES_COUNT_PATH: httpx.ConnectError("connection refused")}
    async with _client(routes) as client:
        with pytest.raises(BackendRequestError, match="connection refused"):
            await client.fetch_article_count()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    "<html>gateway</html>",
    {"data": {"total": 1}},
])
async def test_malformed_envelope_is_sync_failure(body):
    routes = {ARTICLES_COUNT_PATH: (200, body)}
    async with _client(routes) as client:
        with pytest.raises(SyncFailure, match="malformed response envelope"):
            await client.fetch_article_count()


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [
    {"plan": "enterprise", "isPro": True, "isExpired": False},
    {"plan": "pro", "isExpired": False},
    None,
])
async def test_malformed_entitlement_payload_is_sync_failure(data):
    routes = {ENTITLEMENT_PATH: (200, {"success": True, "data": data})}
    async with _client(routes) as client:
        with pytest.raises(SyncFailure, match="malformed entitlement payload"):
            await client.fetch_entitlement()


@pytest.mark.asyncio
async def test_negative_count_is_sync_failure():
    routes = {ARTICLES_COUNT_PATH: (200, {"success": True, "data": {"total": -3}})}
    async with _client(routes) as client:
        with pytest.raises(SyncFailure):
            await client.fetch_article_count()
