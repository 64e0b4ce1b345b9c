"""Analytics endpoint tests."""

import pytest
from httpx import AsyncClient

from shortener.dependencies import ServiceManager


@pytest.mark.asyncio
async def test_analytics_for_new_link(client: AsyncClient) -> None:
    create_resp = await client.post("/api/shorten", json={"url": "https://www.example.com"})
    short_id = create_resp.json()["shortId"]

    response = await client.get(f"/api/analytics/{short_id}")
    assert response.status_code == 200
    data = response.json()
    assert data["clicks"] == 0
    assert data["countries"] == {}
    assert data["devices"] == {}
    assert data["referrers"] == {}
    assert data["clickHistory"] == []
    assert "created" in data


@pytest.mark.asyncio
async def test_analytics_after_clicks(client: AsyncClient, manager: ServiceManager) -> None:
    await client.post("/api/shorten", json={"url": "https://www.example.com", "customCode": "counted"})
    for _ in range(3):
        await client.get("/counted", headers={"User-Agent": "Mozilla/5.0 (iPhone)"}, follow_redirects=False)
    await manager.redirects.drain()

    data = (await client.get("/api/analytics/counted")).json()
    assert data["clicks"] == 3
    assert data["devices"] == {"Mobile": 3}
    assert data["countries"] == {"Unknown": 3}
    assert data["referrers"] == {"Direct": 3}
    assert len(data["clickHistory"]) == 3
    assert set(data["clickHistory"][0]) == {"timestamp", "country", "device", "referrer", "userAgent"}


@pytest.mark.asyncio
async def test_analytics_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/analytics/nonexistent")
    assert response.status_code == 404
    assert response.json() == {"error": "URL not found", "kind": "not_found"}


@pytest.mark.asyncio
async def test_reset_analytics(client: AsyncClient, manager: ServiceManager) -> None:
    await client.post(
        "/api/shorten", json={"url": "https://www.example.com", "customCode": "resetme", "userId": "u1"}
    )
    await client.get("/resetme", follow_redirects=False)
    await manager.redirects.drain()

    response = await client.post("/api/reset-analytics/resetme")
    assert response.status_code == 200
    assert response.json() == {"message": "Analytics reset successfully"}

    data = (await client.get("/api/analytics/resetme")).json()
    assert data["clicks"] == 0
    assert data["clickHistory"] == []

    links = (await client.get("/api/links", params={"userId": "u1"})).json()["links"]
    assert links[0]["clicks"] == 0


@pytest.mark.asyncio
async def test_reset_analytics_unknown_code(client: AsyncClient) -> None:
    response = await client.post("/api/reset-analytics/ghost")
    assert response.status_code == 200
