"""Redirect engine tests: resolution is independent of analytics."""

import pytest

from shortener.analytics import AnalyticsAggregator
from shortener.redirect import RedirectEngine
from shortener.registry import LinkRegistry
from shortener.schemas import ClickContext


@pytest.mark.asyncio
async def test_resolve_hit_returns_target_and_records(
    engine: RedirectEngine, registry: LinkRegistry, aggregator: AnalyticsAggregator
) -> None:
    created = await registry.create("https://example.com/landing", custom_code="promo")

    target = await engine.resolve("promo", ClickContext(country="FR", user_agent="curl/8.4.0"))
    assert target is not None
    assert target.original_url == "https://example.com/landing"
    assert target.status_code == 302
    assert target.short_code == created.short_id

    await engine.drain()
    assert engine.pending == 0
    record = await aggregator.get("promo")
    assert record.clicks == 1
    assert record.countries == {"FR": 1}


@pytest.mark.asyncio
async def test_resolve_miss_returns_none_without_recording(
    engine: RedirectEngine, aggregator: AnalyticsAggregator
) -> None:
    assert await engine.resolve("nope", ClickContext()) is None
    assert engine.pending == 0
    assert await aggregator.get("nope") is None


@pytest.mark.asyncio
async def test_resolve_succeeds_when_analytics_fails(
    engine: RedirectEngine, registry: LinkRegistry, aggregator: AnalyticsAggregator, monkeypatch
) -> None:
    await registry.create("https://example.com", custom_code="flaky")

    async def broken_record(short_code: str, context: ClickContext):
        raise RuntimeError("analytics store down")

    monkeypatch.setattr(aggregator, "record", broken_record)

    target = await engine.resolve("flaky", ClickContext())
    assert target is not None
    assert target.original_url == "https://example.com"

    await engine.drain()
    assert engine.pending == 0


@pytest.mark.asyncio
async def test_drain_waits_for_every_click(
    engine: RedirectEngine, registry: LinkRegistry, aggregator: AnalyticsAggregator
) -> None:
    await registry.create("https://example.com", custom_code="busy")
    for _ in range(10):
        await engine.resolve("busy", ClickContext())

    await engine.drain()
    assert (await aggregator.get("busy")).clicks == 10
