"""Link persistence: key layout, LinkRecord repository and ownership index.

Key Layout (links namespace)
============================
::
    url:{code}            -> raw original URL (redirect hot path)
    urldata:{code}        -> LinkRecord JSON
    user:{owner_id}:urls  -> JSON array of codes, newest first

Key Behaviours
===============
- The mapping and the record are separate keys. The redirect path reads only
  the mapping; listing and ownership checks read the record.
- The ownership index is derived state. It is updated next to the record
  writes without any transaction, so a crash between the two leaves an index
  entry pointing at nothing (or a record nobody lists). Readers tolerate
  both: listing skips dangling codes, removal ignores missing entries.
- Index updates are read-modify-write on one key; two concurrent creates for
  the same owner can lose one prepend.
"""

import json
import logging

from shortener.schemas import LinkRecord
from shortener.store import KeyValueStore

__all__ = [
    "mapping_key",
    "record_key",
    "owner_index_key",
    "LinkRecords",
    "OwnershipIndex",
]

logger = logging.getLogger("shortener.links")


def mapping_key(short_code: str) -> str:
    return f"url:{short_code}"


def record_key(short_code: str) -> str:
    return f"urldata:{short_code}"


def owner_index_key(owner_id: str) -> str:
    return f"user:{owner_id}:urls"


class LinkRecords:
    """Reads and writes the code mapping and the LinkRecord of each link."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def claim(self, short_code: str, original_url: str) -> bool:
        """Write the code mapping unless the code is already taken."""
        return await self._store.put_if_absent(mapping_key(short_code), original_url)

    async def resolve(self, short_code: str) -> str | None:
        return await self._store.get(mapping_key(short_code))

    async def get(self, short_code: str) -> LinkRecord | None:
        raw = await self._store.get(record_key(short_code))
        if raw is None:
            return None
        return LinkRecord.model_validate_json(raw)

    async def save(self, record: LinkRecord) -> None:
        await self._store.put(record_key(record.short_id), record.to_json())

    async def set_clicks(self, short_code: str, clicks: int) -> bool:
        """Mirror a click total onto the record; False when no record exists."""
        record = await self.get(short_code)
        if record is None:
            return False
        record.clicks = clicks
        await self.save(record)
        return True

    async def remove(self, short_code: str) -> None:
        await self._store.delete(mapping_key(short_code))
        await self._store.delete(record_key(short_code))


class OwnershipIndex:
    """Per-owner ordered list of short codes, newest first."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    async def codes(self, owner_id: str) -> list[str]:
        raw = await self._store.get(owner_index_key(owner_id))
        if not raw:
            return []
        try:
            codes = json.loads(raw)
        except ValueError:
            logger.error(f"Corrupt ownership index for owner {owner_id}, treating as empty")
            return []
        return [code for code in codes if isinstance(code, str)]

    async def add(self, owner_id: str, short_code: str) -> None:
        codes = [code for code in await self.codes(owner_id) if code != short_code]
        codes.insert(0, short_code)
        await self._store.put(owner_index_key(owner_id), json.dumps(codes))

    async def remove(self, owner_id: str, short_code: str) -> bool:
        """Drop ``short_code`` from the owner's list; False when it was not there."""
        codes = await self.codes(owner_id)
        if short_code not in codes:
            return False
        codes = [code for code in codes if code != short_code]
        await self._store.put(owner_index_key(owner_id), json.dumps(codes))
        return True
