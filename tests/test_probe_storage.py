from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from payments_app.core.cache import CacheStore
from payments_app.probes import OutcomeStatus, StorageProbeConfig, run_storage_probe
from payments_app.probes.storage import TEST_VALUE, fetch_first_row


def make_db(row: dict[str, Any] | None) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.mappings.return_value.first.return_value = row
    db.execute.return_value = result
    return db


@pytest.mark.asyncio
async def test_storage_probe_success(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="payments_cache:")
    db = make_db({"id": 1, "name": "first"})

    outcome = await run_storage_probe(cache, fake_redis, db, StorageProbeConfig())

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.http_status == 200
    assert outcome.body == {
        "cacheTest": TEST_VALUE,
        "redisTest": TEST_VALUE,
        "dbTest": {"id": 1, "name": "first"},
    }


@pytest.mark.asyncio
async def test_storage_probe_empty_table_is_not_an_error(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="payments_cache:")

    outcome = await run_storage_probe(cache, fake_redis, make_db(None), StorageProbeConfig())

    assert outcome.status is OutcomeStatus.SUCCESS
    assert outcome.body["dbTest"] is None


@pytest.mark.asyncio
async def test_storage_probe_is_repeatable(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="payments_cache:")
    fake_redis.data["test_redis"] = "left over from an earlier run"
    fake_redis.data["payments_cache:test_cache"] = '"stale"'

    first = await run_storage_probe(cache, fake_redis, make_db(None), StorageProbeConfig())
    second = await run_storage_probe(cache, fake_redis, make_db(None), StorageProbeConfig())

    assert first.status is OutcomeStatus.SUCCESS
    assert second.status is OutcomeStatus.SUCCESS
    assert second.body["redisTest"] == TEST_VALUE
    assert second.body["cacheTest"] == TEST_VALUE


@pytest.mark.asyncio
async def test_storage_probe_failure_keeps_completed_steps(fake_redis: Any) -> None:
    cache = CacheStore(fake_redis, prefix="payments_cache:")
    kv = AsyncMock()
    kv.set.side_effect = ConnectionRefusedError("Connection refused")
    db = make_db(None)

    outcome = await run_storage_probe(cache, kv, db, StorageProbeConfig())

    assert outcome.status is OutcomeStatus.ERROR
    assert outcome.http_status == 500
    assert outcome.body["status"] == "error"
    assert outcome.body["error_kind"] == "connection_failure"
    assert "refused" in outcome.body["error"]
    steps = outcome.body["steps"]
    assert [s["operation"] for s in steps] == ["cache_put", "cache_get", "redis_set"]
    assert [s["succeeded"] for s in steps] == [True, True, False]
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_first_row_selects_one_row_from_table() -> None:
    db = make_db({"id": 7})

    row = await fetch_first_row(db, "test")

    assert row == {"id": 7}
    stmt = db.execute.call_args.args[0]
    sql = str(stmt)
    assert "SELECT *" in sql
    assert "FROM test" in sql
    assert "LIMIT" in sql
