"""Link creation, lookup, listing and deletion.

Flow Diagram — create()
=======================
::
    ┌─────────────┐
    │ POST /api/  │
    │ shorten     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Validate URL│  InvalidInput
    │ (validators)│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Claim code  │  custom: CodeConflict if taken
    │ url:{code}  │  generated: redraw, ExhaustedRetries
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ PUT         │
    │ urldata:{c} │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Prepend to  │  only with an owner
    │ owner index │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Zeroed      │
    │ analytics   │
    └─────────────┘

Key Behaviours
===============
- Each step is its own store write; there is no multi-key transaction. A
  failure part-way raises ``Unavailable`` and leaves earlier writes in place.
- The code is claimed with ``put_if_absent``. On the default store that is
  check-then-act and two racing creates of one custom code can both pass, the
  later write winning. Redis claims with ``SET NX`` and only one succeeds.
- Deleting with no requester id is allowed for any link. This mirrors the
  public API, where the caller's id is an optional query parameter.
"""

import logging
import re

import validators
from nanoid import generate
from prometheus_client import Counter

from shortener.analytics import AnalyticsAggregator
from shortener.codes import CodeGenerator
from shortener.enums import RequestStatus
from shortener.errors import CodeConflict, ExhaustedRetries, InvalidInput, NotFound, Unauthorized
from shortener.links import LinkRecords, OwnershipIndex
from shortener.schemas import ANONYMOUS_OWNER, LinkRecord, ShortenResponse, utcnow

__all__ = ["LinkRegistry", "CUSTOM_CODE_PATTERN"]

logger = logging.getLogger("shortener.registry")

CUSTOM_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
DEFAULT_MAX_ATTEMPTS = 10

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_DELETIONS_TOTAL = Counter(
    "url_shortener_deletions_total",
    "Links deleted",
)


class LinkRegistry:
    """Owns the lifecycle of short links.

    Args:
        links: Mapping and record persistence.
        index: Per-owner ownership index.
        analytics: Aggregator whose record is created and deleted with the link.
        codes: Generator for codes when the caller gives none.
        base_url: Default origin for ``shortUrl`` when a call passes none.
        max_attempts: Ceiling on generated-code redraws.
        id_length: Length of the internal nanoid record id.
    """

    def __init__(
        self,
        links: LinkRecords,
        index: OwnershipIndex,
        analytics: AnalyticsAggregator,
        codes: CodeGenerator,
        base_url: str = "",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        id_length: int = 16,
    ) -> None:
        self._links = links
        self._index = index
        self._analytics = analytics
        self._codes = codes
        self._base_url = base_url.rstrip("/")
        self._max_attempts = max_attempts
        self._id_length = id_length

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(
        self,
        url: str | None,
        custom_code: str | None = None,
        owner_id: str | None = None,
        base_url: str | None = None,
    ) -> ShortenResponse:
        """Create a short link and everything that hangs off it.

        Args:
            url: Absolute URL to shorten.
            custom_code: Code requested by the caller; generated when empty.
            owner_id: Owner to index the link under; anonymous when empty.
            base_url: Origin prepended to the code in ``shortUrl``.

        Returns:
            ShortenResponse: The public short URL and its code.

        Raises:
            InvalidInput: URL missing or malformed, or custom code not path-safe.
            CodeConflict: Custom code already mapped.
            ExhaustedRetries: No free generated code within the retry ceiling.
            Unavailable: A store write failed.
        """
        try:
            self._validate_url(url)
            short_code = await self._claim_code(url, custom_code)
        except (InvalidInput, CodeConflict) as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            logger.warning(f"Link creation rejected: {exc}")
            raise
        except Exception:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            raise

        origin = (base_url or self._base_url).rstrip("/")
        record = LinkRecord(
            id=generate(size=self._id_length),
            short_id=short_code,
            original_url=url,
            short_url=f"{origin}/{short_code}",
            user_id=owner_id or ANONYMOUS_OWNER,
            clicks=0,
            created_at=utcnow(),
        )
        await self._links.save(record)
        if not record.is_anonymous:
            await self._index.add(record.user_id, short_code)
        await self._analytics.initialize(short_code)

        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        logger.info(f"Created short URL: {short_code} -> {url}")
        return ShortenResponse(short_url=record.short_url, short_id=short_code)

    async def lookup(self, short_code: str) -> str | None:
        return await self._links.resolve(short_code)

    async def get(self, short_code: str) -> LinkRecord | None:
        return await self._links.get(short_code)

    async def list_for_owner(self, owner_id: str) -> list[LinkRecord]:
        """Owner's links, newest first, skipping codes whose record is gone."""
        records: list[LinkRecord] = []
        for short_code in await self._index.codes(owner_id):
            record = await self._links.get(short_code)
            if record is None:
                logger.debug(f"Skipping dangling index entry {short_code} for owner {owner_id}")
                continue
            analytics = await self._analytics.get(short_code)
            if analytics is not None:
                record.clicks = analytics.clicks
            records.append(record)
        return records

    async def delete(self, short_code: str, requester_id: str | None = None) -> None:
        """Delete a link with its analytics and index entry.

        Raises:
            NotFound: Neither a record nor a mapping exists for the code.
            Unauthorized: The link has a real owner and the requester is someone else.
        """
        record = await self._links.get(short_code)
        if record is None and await self._links.resolve(short_code) is None:
            raise NotFound("Link not found")

        if record is not None and requester_id and not record.is_anonymous and record.user_id != requester_id:
            logger.warning(f"Delete of {short_code} refused for requester {requester_id}")
            raise Unauthorized("Unauthorized")

        await self._links.remove(short_code)
        await self._analytics.delete(short_code)
        if record is not None and not record.is_anonymous:
            await self._index.remove(record.user_id, short_code)

        LINK_DELETIONS_TOTAL.inc()
        logger.info(f"Deleted short URL: {short_code}")

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    @staticmethod
    def _validate_url(url: str | None) -> None:
        if not url:
            raise InvalidInput("URL is required")
        if not validators.url(url, simple_host=True):
            raise InvalidInput("Invalid URL provided")

    async def _claim_code(self, url: str, custom_code: str | None) -> str:
        if custom_code:
            if not CUSTOM_CODE_PATTERN.match(custom_code):
                raise InvalidInput("Custom code may only contain letters, digits, '-' and '_' (max 64)")
            if not await self._links.claim(custom_code, url):
                raise CodeConflict("Custom code already in use")
            return custom_code

        for attempt in range(1, self._max_attempts + 1):
            short_code = self._codes.generate()
            if await self._links.claim(short_code, url):
                return short_code
            logger.debug(f"Generated code {short_code} collided (attempt {attempt})")
        raise ExhaustedRetries(f"Could not allocate a free short code after {self._max_attempts} attempts")
