"""Application cache backed by its own Redis database.

Values are JSON-encoded and keys are namespaced with ``settings.cache_prefix`` so the
cache never collides with the raw key/value store.

Usage:
    cache = CacheStore(cache_redis_client, prefix="payments_cache:")
    await cache.put("test_cache", "This is a test value")
    value = await cache.get("test_cache")
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator
from typing import Any

import redis.asyncio as aioredis

from payments_app.core.config import settings
from payments_app.core.redis import cache_redis_client

logger = logging.getLogger(__name__)


class CacheStore:
    """JSON cache over a Redis client with a key prefix and optional TTL."""

    def __init__(
        self,
        client: aioredis.Redis,
        prefix: str = "",
        ttl: int | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._ttl = ttl

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value, overwriting unconditionally."""
        expire = ttl if ttl is not None else self._ttl
        await self._client.set(self._key(key), json.dumps(value), ex=expire)

    async def get(self, key: str, default: Any = None) -> Any:
        """Read a value. Missing or unreadable entries return ``default``."""
        raw = await self._client.get(self._key(key))
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Cache entry %s is not valid JSON, ignoring", key)
            return default


async def get_cache() -> AsyncGenerator[CacheStore]:
    yield CacheStore(
        cache_redis_client,
        prefix=settings.cache_prefix,
        ttl=settings.cache_ttl,
    )
