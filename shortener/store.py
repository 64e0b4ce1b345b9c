"""Key-value store contract and its Redis and in-memory implementations.

The core services never talk to Redis directly: they receive a
:class:`KeyValueStore` per logical namespace (links, analytics, users) and
use nothing beyond single-key operations.

Contract
========
::
    get(key)                      -> str | None
    put(key, value, ttl=None)     -> None
    delete(key)                   -> None
    put_if_absent(key, value)     -> bool   (True when this call wrote)
    ping()                        -> bool

Key Behaviours
===============
- A single operation on one key is atomic; nothing spans several keys.
- ``put_if_absent`` defaults to a read followed by a write. Between the two
  another writer may claim the key and the later write wins. Redis replaces
  it with ``SET NX`` which closes that window.
- Redis failures are raised as :class:`shortener.errors.Unavailable`.
- ``InMemoryKeyValueStore`` honours TTLs lazily on read and backs the test
  suite and ``STORE_BACKEND=memory`` deployments.

Classes:
    KeyValueStore:  Abstract async contract.
    RedisKeyValueStore:  Namespaced adapter over ``redis.asyncio``.
    InMemoryKeyValueStore:  Process-local dictionary implementation.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import redis.asyncio as redis
from redis.exceptions import RedisError

from shortener.errors import Unavailable

__all__ = ["KeyValueStore", "RedisKeyValueStore", "InMemoryKeyValueStore"]


class KeyValueStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None: ...

    @abstractmethod
    async def put(self, key: str, value: str, ttl: int | None = None) -> None: ...

    @abstractmethod
    async def delete(self, key: str) -> None: ...

    async def put_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool:
        """Write ``value`` only if ``key`` holds nothing yet.

        Not atomic here: a concurrent writer can slip in between the read and
        the write. Stores with an exclusive-create primitive override this.
        """
        if await self.get(key) is not None:
            return False
        await self.put(key, value, ttl=ttl)
        return True

    async def ping(self) -> bool:
        return True


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed store; every key is prefixed with ``{namespace}:``."""

    def __init__(self, client: redis.Redis, namespace: str) -> None:
        self._client = client
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    @contextmanager
    def _translate_errors(self, operation: str, key: str) -> Iterator[None]:
        try:
            yield
        except RedisError as exc:
            raise Unavailable(f"Store {operation} failed for '{self._namespace}:{key}'") from exc

    async def get(self, key: str) -> str | None:
        with self._translate_errors("get", key):
            return await self._client.get(self._key(key))

    async def put(self, key: str, value: str, ttl: int | None = None) -> None:
        with self._translate_errors("put", key):
            await self._client.set(self._key(key), value, ex=ttl)

    async def delete(self, key: str) -> None:
        with self._translate_errors("delete", key):
            await self._client.delete(self._key(key))

    async def put_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool:
        with self._translate_errors("put_if_absent", key):
            written = await self._client.set(self._key(key), value, ex=ttl, nx=True)
        return bool(written)

    async def ping(self) -> bool:
        with self._translate_errors("ping", "-"):
            return bool(await self._client.ping())


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests and single-process development."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}
        self._clock = clock

    def __len__(self) -> int:
        return sum(1 for key in list(self._data) if self._live(key))

    def _live(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        _, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> str | None:
        if not self._live(key):
            return None
        return self._data[key][0]

    async def put(self, key: str, value: str, ttl: int | None = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def put_if_absent(self, key: str, value: str, ttl: int | None = None) -> bool:
        # No await between check and write, so this is atomic within the event loop.
        if self._live(key):
            return False
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)
        return True
