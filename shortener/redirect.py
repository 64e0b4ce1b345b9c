"""Redirect resolution with fire-and-continue analytics.

State Diagram — resolve()
=========================
::
    ┌─────────────┐
    │   LOOKUP    │
    └──────┬──────┘
    HIT?  │
    ┌─────┴──────────┐
    │ NO              │ YES
    ▼                 ▼
┌─────────┐   ┌────────────────┐
│NOT_FOUND│   │RECORD_ANALYTICS│  task scheduled, not awaited
└─────────┘   └───────┬────────┘
                      ▼
              ┌────────────────┐
              │ REDIRECT(url)  │
              └────────────────┘

Key Behaviours
===============
- The redirect decision depends on the lookup only. Analytics recording runs
  as a separate ``asyncio`` task and its outcome never reaches the caller.
- Recording failures are logged and counted, then dropped.
- Pending tasks are held in a set so they are not garbage-collected mid-run;
  ``drain()`` waits for them on shutdown.
"""

import asyncio
import logging
from dataclasses import dataclass

from prometheus_client import Counter

from shortener.analytics import AnalyticsAggregator
from shortener.enums import RedirectState
from shortener.registry import LinkRegistry
from shortener.schemas import ClickContext

__all__ = ["RedirectEngine", "RedirectTarget"]

logger = logging.getLogger("shortener.redirect")

URL_REDIRECT_REQUESTS_TOTAL = Counter(
    "url_shortener_redirect_requests_total",
    "Total URL redirect requests",
    ["state"],
)
ANALYTICS_FAILURES_TOTAL = Counter(
    "url_shortener_analytics_failures_total",
    "Analytics recordings that failed after a redirect was issued",
)


@dataclass(frozen=True)
class RedirectTarget:
    short_code: str
    original_url: str
    status_code: int = 302


class RedirectEngine:
    def __init__(self, registry: LinkRegistry, analytics: AnalyticsAggregator) -> None:
        self._registry = registry
        self._analytics = analytics
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def resolve(self, short_code: str, context: ClickContext) -> RedirectTarget | None:
        """Look up ``short_code`` and schedule analytics on a hit.

        Returns:
            Optional[RedirectTarget]: Where to send the visitor, None if unknown.

        Raises:
            Unavailable: The lookup itself could not reach the store.
        """
        logger.debug(f"[{RedirectState.LOOKUP}] {short_code}")
        original_url = await self._registry.lookup(short_code)
        if original_url is None:
            URL_REDIRECT_REQUESTS_TOTAL.labels(state=RedirectState.NOT_FOUND).inc()
            logger.info(f"URL not found for short code: {short_code}")
            return None

        self._dispatch(short_code, context)
        URL_REDIRECT_REQUESTS_TOTAL.labels(state=RedirectState.REDIRECT).inc()
        return RedirectTarget(short_code=short_code, original_url=original_url)

    async def drain(self) -> None:
        """Wait for every analytics recording scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def _dispatch(self, short_code: str, context: ClickContext) -> None:
        logger.debug(f"[{RedirectState.RECORD_ANALYTICS}] {short_code}")
        task = asyncio.create_task(self._record_quietly(short_code, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record_quietly(self, short_code: str, context: ClickContext) -> None:
        try:
            await self._analytics.record(short_code, context)
        except Exception as exc:
            ANALYTICS_FAILURES_TOTAL.inc()
            logger.error(f"Error updating analytics for {short_code}: {exc}")
