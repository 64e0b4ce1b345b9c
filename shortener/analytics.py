"""Per-link click aggregation.

Flow Diagram — record()
=======================
::
    ┌─────────────┐
    │  redirect   │
    │  (hit)      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Classify    │
    │ device +    │
    │ referrer    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ GET record  │  absent → zero record
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ +1 clicks,  │
    │ breakdowns, │
    │ history     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ PUT record  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Mirror      │  best effort, second write
    │ clicks onto │
    │ LinkRecord  │
    └─────────────┘

Key Behaviours
===============
- Read-modify-write without compare-and-swap. Two concurrent redirects of
  the same code can read the same record and one increment is lost. The
  whole step lives in ``_increment`` so a store with atomic counters can
  replace it without touching callers.
- Breakdown labels are open-ended strings: countries and referrer hosts come
  straight from visitor-controlled headers.
- History holds at most ``history_limit`` events, oldest dropped first.
- Device precedence is Mobile, then Tablet, then Desktop, then Unknown. Many
  mobile agents also name a desktop OS (``Linux; Android``), so the mobile
  pattern must be tried first.
"""

import datetime
import logging
import re
from collections.abc import Callable
from urllib.parse import urlsplit

from prometheus_client import Counter

from shortener.enums import DeviceClass
from shortener.history import DEFAULT_HISTORY_CAPACITY, ClickHistory
from shortener.links import LinkRecords
from shortener.schemas import AnalyticsRecord, ClickContext, ClickEvent, utcnow
from shortener.store import KeyValueStore

__all__ = [
    "AnalyticsAggregator",
    "DIRECT_REFERRER",
    "classify_device",
    "referrer_domain",
]

logger = logging.getLogger("shortener.analytics")

DIRECT_REFERRER = "Direct"
DEFAULT_USER_AGENT_LIMIT = 200

MOBILE_PATTERN = re.compile(r"Mobile|Android|iPhone|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)
TABLET_PATTERN = re.compile(r"iPad", re.IGNORECASE)
DESKTOP_PATTERN = re.compile(r"Windows|Macintosh|Linux|X11", re.IGNORECASE)

DEVICE_PATTERNS: tuple[tuple[re.Pattern[str], DeviceClass], ...] = (
    (MOBILE_PATTERN, DeviceClass.MOBILE),
    (TABLET_PATTERN, DeviceClass.TABLET),
    (DESKTOP_PATTERN, DeviceClass.DESKTOP),
)

CLICKS_RECORDED_TOTAL = Counter(
    "url_shortener_clicks_recorded_total",
    "Redirects attributed to a link's analytics record",
)
CLICK_MIRROR_FAILURES_TOTAL = Counter(
    "url_shortener_click_mirror_failures_total",
    "Failed writes mirroring click totals onto link records",
)


def classify_device(user_agent: str | None) -> DeviceClass:
    if not user_agent:
        return DeviceClass.UNKNOWN
    for pattern, device in DEVICE_PATTERNS:
        if pattern.search(user_agent):
            return device
    return DeviceClass.UNKNOWN


def referrer_domain(referer: str | None) -> str:
    """Hostname of an absolute referer URL, ``Direct`` for anything else."""
    if not referer:
        return DIRECT_REFERRER
    try:
        parts = urlsplit(referer)
        hostname = parts.hostname
    except ValueError:
        return DIRECT_REFERRER
    if not parts.scheme or not hostname:
        return DIRECT_REFERRER
    return hostname


class AnalyticsAggregator:
    """Owns the analytics record of every link.

    Args:
        store: Analytics namespace; records are keyed by bare short code.
        links: Link records, used to mirror click totals.
        history_limit: Maximum number of click events kept per link.
        user_agent_limit: User agents are truncated to this many characters.
        clock: Source of timestamps, replaced in tests.
    """

    def __init__(
        self,
        store: KeyValueStore,
        links: LinkRecords,
        history_limit: int = DEFAULT_HISTORY_CAPACITY,
        user_agent_limit: int = DEFAULT_USER_AGENT_LIMIT,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._store = store
        self._links = links
        self._history_limit = history_limit
        self._user_agent_limit = user_agent_limit
        self._clock = clock

    async def initialize(self, short_code: str) -> AnalyticsRecord:
        record = AnalyticsRecord.zero(self._clock())
        await self._save(short_code, record)
        return record

    async def get(self, short_code: str) -> AnalyticsRecord | None:
        raw = await self._store.get(short_code)
        if raw is None:
            return None
        return AnalyticsRecord.model_validate_json(raw)

    async def record(self, short_code: str, context: ClickContext) -> AnalyticsRecord:
        event = self._build_event(context)
        record = await self._increment(short_code, event)
        CLICKS_RECORDED_TOTAL.inc()
        logger.debug(f"Recorded click for {short_code}: total={record.clicks} device={event.device}")
        await self._mirror_clicks(short_code, record.clicks)
        return record

    async def reset(self, short_code: str) -> AnalyticsRecord:
        record = await self.initialize(short_code)
        await self._mirror_clicks(short_code, 0)
        logger.info(f"Analytics reset for {short_code}")
        return record

    async def delete(self, short_code: str) -> None:
        await self._store.delete(short_code)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_event(self, context: ClickContext) -> ClickEvent:
        user_agent = context.user_agent or ""
        return ClickEvent(
            timestamp=self._clock(),
            country=context.country or "Unknown",
            device=classify_device(user_agent).value,
            referrer=referrer_domain(context.referer),
            user_agent=user_agent[: self._user_agent_limit],
        )

    async def _increment(self, short_code: str, event: ClickEvent) -> AnalyticsRecord:
        record = await self.get(short_code)
        if record is None:
            # record() can run before initialize() has landed on a lagging store.
            record = AnalyticsRecord.zero(self._clock())

        record.clicks += 1
        record.countries[event.country] = record.countries.get(event.country, 0) + 1
        record.devices[event.device] = record.devices.get(event.device, 0) + 1
        record.referrers[event.referrer] = record.referrers.get(event.referrer, 0) + 1

        history = ClickHistory(record.click_history, capacity=self._history_limit)
        history.append(event)
        record.click_history = history.to_list()

        await self._save(short_code, record)
        return record

    async def _save(self, short_code: str, record: AnalyticsRecord) -> None:
        await self._store.put(short_code, record.to_json())

    async def _mirror_clicks(self, short_code: str, clicks: int) -> None:
        try:
            await self._links.set_clicks(short_code, clicks)
        except Exception as exc:
            CLICK_MIRROR_FAILURES_TOTAL.inc()
            logger.warning(f"Click mirror failed for {short_code}: {exc}")
