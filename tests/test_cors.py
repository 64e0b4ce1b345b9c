"""CORS header tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from shortener.dependencies import ServiceManager
from shortener.main import app


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/shorten", "/api/links/abc", "/anything"])
async def test_preflight_answered_directly(client: AsyncClient, path: str) -> None:
    response = await client.options(path)
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, DELETE, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type, Authorization"
    assert response.headers["access-control-max-age"] == "86400"


@pytest.mark.asyncio
async def test_regular_responses_carry_cors_headers(client: AsyncClient) -> None:
    ok = await client.get("/api/health")
    missing = await client.get("/api/analytics/none")
    assert ok.headers["access-control-allow-origin"] == "*"
    assert missing.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_unexpected_error_carries_cors_headers(manager: ServiceManager, monkeypatch) -> None:
    async def broken_create(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(manager.registry, "create", broken_create)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/shorten", json={"url": "https://example.com"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "kind": "unexpected"}
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, POST, DELETE, OPTIONS"
