"""Redis client management for the URL shortener.

This module provides a singleton Redis client with connection management.
All three logical namespaces (links, analytics, users) share this client;
namespacing happens in :class:`shortener.store.RedisKeyValueStore`.

Flow Diagram — Redis Operations
=============================
::
    ┌─────────────┐
    │ServiceManager│
    │ initialize()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_redis()  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check global │
    │ client var   │
    └──────┬──────┘
    EXISTS?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Redis   │  │ existing│
│ client  │  │ client  │
└─────────┘  └─────────┘

Key Behaviours
===============
- Redis client is created lazily on first access.
- Global client is reused across all requests.
- Connection is properly closed on application shutdown.
- UTF-8 encoding with decode_responses for string operations.

Functions:
    get_redis():  Return the shared client, creating it on first use.
    close_redis():  Cleanup function for shutdown.
"""

import redis.asyncio as redis

from shortener.config import get_settings

__all__ = ["close_redis", "get_redis"]

redis_client: redis.Redis | None = None


async def get_redis(url: str | None = None) -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            url or get_settings().REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
