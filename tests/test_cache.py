from __future__ import annotations

import json
from typing import Any

import pytest

from payments_app.core.cache import CacheStore


@pytest.mark.asyncio
async def test_put_and_get_use_prefix_and_json(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="payments_cache:")

    await cache.put("test_cache", {"a": 1})

    assert json.loads(fake_redis.data["payments_cache:test_cache"]) == {"a": 1}
    assert await cache.get("test_cache") == {"a": 1}
    assert fake_redis.expiry["payments_cache:test_cache"] is None


@pytest.mark.asyncio
async def test_ttl_default_and_override(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="c:", ttl=60)

    await cache.put("a", "x")
    await cache.put("b", "y", ttl=5)

    assert fake_redis.expiry["c:a"] == 60
    assert fake_redis.expiry["c:b"] == 5


@pytest.mark.asyncio
async def test_get_missing_or_corrupt_returns_default(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="c:")
    fake_redis.data["c:corrupt"] = "{not json"

    assert await cache.get("missing") is None
    assert await cache.get("missing", default="fallback") == "fallback"
    assert await cache.get("corrupt") is None

