"""Shared pytest fixtures for the core services and the HTTP API.

Everything runs against ``InMemoryKeyValueStore``; the Redis adapter has its
own mocked-client tests in ``test_store.py``.
"""

import datetime
from collections.abc import Iterable
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shortener.analytics import AnalyticsAggregator
from shortener.codes import CodeGenerator
from shortener.config import Settings
from shortener.dependencies import ServiceManager
from shortener.enums import StoreBackend
from shortener.links import LinkRecords, OwnershipIndex
from shortener.mailer import LoggingEmailSender
from shortener.main import app
from shortener.redirect import RedirectEngine
from shortener.registry import LinkRegistry
from shortener.store import InMemoryKeyValueStore

BASE_URL = "http://sho.rt"


class FakeClock:
    """Advances one second on every call so timestamps are strictly ordered."""

    def __init__(self, start: datetime.datetime | None = None) -> None:
        self.now = start or datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        self.now += datetime.timedelta(seconds=1)
        return self.now


class ScriptedCodes(CodeGenerator):
    """Code generator that hands out a fixed sequence of codes."""

    def __init__(self, codes: Iterable[str]) -> None:
        super().__init__()
        self._codes = iter(codes)

    def generate(self, length: int | None = None) -> str:
        return next(self._codes)


@pytest.fixture
def settings() -> Settings:
    return Settings(STORE_BACKEND=StoreBackend.MEMORY, BASE_URL=BASE_URL, LOG_LEVEL="DEBUG")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def links_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def analytics_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def link_records(links_store: InMemoryKeyValueStore) -> LinkRecords:
    return LinkRecords(links_store)


@pytest.fixture
def ownership_index(links_store: InMemoryKeyValueStore) -> OwnershipIndex:
    return OwnershipIndex(links_store)


@pytest.fixture
def aggregator(
    analytics_store: InMemoryKeyValueStore, link_records: LinkRecords, clock: FakeClock
) -> AnalyticsAggregator:
    return AnalyticsAggregator(analytics_store, link_records, clock=clock)


@pytest.fixture
def registry(
    link_records: LinkRecords, ownership_index: OwnershipIndex, aggregator: AnalyticsAggregator
) -> LinkRegistry:
    return LinkRegistry(link_records, ownership_index, aggregator, CodeGenerator(), base_url=BASE_URL)


@pytest.fixture
def engine(registry: LinkRegistry, aggregator: AnalyticsAggregator) -> RedirectEngine:
    return RedirectEngine(registry, aggregator)


@pytest.fixture
def mailer() -> LoggingEmailSender:
    return LoggingEmailSender()


@pytest_asyncio.fixture
async def manager(settings: Settings, mailer: LoggingEmailSender) -> AsyncGenerator[ServiceManager, None]:
    service_manager = ServiceManager()
    await service_manager.cleanup()
    await service_manager.initialize(settings, mailer=mailer)
    yield service_manager
    await service_manager.cleanup()


@pytest_asyncio.fixture
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
