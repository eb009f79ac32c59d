"""Cache, key/value store and SQL connectivity probe (``/test/dbs``)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import redis.asyncio as aioredis
from sqlalchemy import literal_column, select, table
from sqlalchemy.ext.asyncio import AsyncSession

from payments_app.core.cache import CacheStore
from payments_app.core.exceptions import classify_exception
from payments_app.probes.outcome import ProbeOutcome, StepRecorder
from payments_app.schemas import ProbeErrorResponse, StorageProbeResponse

logger = logging.getLogger(__name__)

TEST_VALUE = "This is a test value"
CACHE_KEY = "test_cache"
REDIS_KEY = "test_redis"


@dataclass(frozen=True)
class StorageProbeConfig:
    table: str = "test"


async def fetch_first_row(db: AsyncSession, table_name: str) -> dict[str, Any] | None:
    """Return the first row of ``table_name`` as a mapping, or None if it is empty."""
    stmt = select(literal_column("*")).select_from(table(table_name)).limit(1)
    result = await db.execute(stmt)
    row = result.mappings().first()
    return dict(row) if row is not None else None


async def run_storage_probe(
    cache: CacheStore,
    redis: aioredis.Redis,
    db: AsyncSession,
    config: StorageProbeConfig,
) -> ProbeOutcome:
    """Write and read back a fixed value in cache and KV store, then read one SQL row.

    Writes are unconditional overwrites, so repeated runs never trip over leftovers.
    """
    recorder = StepRecorder()
    try:
        await recorder.run("cache_put", cache.put(CACHE_KEY, TEST_VALUE))
        cache_value = await recorder.run("cache_get", cache.get(CACHE_KEY), record_value=True)
        await recorder.run("redis_set", redis.set(REDIS_KEY, TEST_VALUE))
        redis_value = await recorder.run("redis_get", redis.get(REDIS_KEY), record_value=True)
        row = await recorder.run("db_first", fetch_first_row(db, config.table))
    except Exception as e:
        kind = classify_exception(e)
        logger.exception("Storage probe failed (%s)", kind)
        body = ProbeErrorResponse(
            message="Storage connectivity test failed",
            error=str(e),
            error_kind=kind,
            steps=recorder.read(),
        )
        return ProbeOutcome.error(kind, body.model_dump(mode="json", exclude_none=True), str(e))

    return ProbeOutcome.success(
        StorageProbeResponse(
            cacheTest=cache_value,
            redisTest=redis_value,
            dbTest=row,
        ).model_dump(mode="json")
    )
