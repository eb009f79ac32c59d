from __future__ import annotations

import json
import os
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from payments_app import health

DB_ENV = {
    "DB_HOST": "db.internal",
    "DB_PORT": "5432",
    "DB_DATABASE": "payments",
    "DB_USERNAME": "payments_user",
    "DB_PASSWORD": "secret",
}


@pytest.mark.asyncio
async def test_no_database_env_reports_process_only() -> None:
    status = await health.build_health_status({})

    body = status.model_dump(exclude_none=True)
    assert set(body) == {"status", "timestamp", "service"}
    assert body["status"] == "ok"
    assert body["service"] == "payments-app"


@pytest.mark.asyncio
async def test_database_check_needs_host_and_name() -> None:
    with patch("payments_app.health.asyncpg.connect", new_callable=AsyncMock) as connect:
        status = await health.build_health_status({"DB_HOST": "db.internal"})

    connect.assert_not_awaited()
    assert status.database is None


@pytest.mark.asyncio
async def test_reachable_database_is_connected() -> None:
    with patch("payments_app.health.asyncpg.connect", new_callable=AsyncMock) as connect:
        status = await health.build_health_status(DB_ENV)

    assert status.status == "ok"
    assert status.database == "connected"
    assert status.db_error is None
    kwargs = connect.await_args.kwargs
    assert kwargs["host"] == "db.internal"
    assert kwargs["port"] == 5432
    assert kwargs["database"] == "payments"
    connect.return_value.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_unreachable_database_is_disconnected_but_ok() -> None:
    with patch(
        "payments_app.health.asyncpg.connect",
        AsyncMock(side_effect=ConnectionRefusedError("Connection refused")),
    ):
        status = await health.build_health_status(DB_ENV)

    assert status.status == "ok"
    assert status.database == "disconnected"
    assert status.db_error == "Connection refused"


@pytest.mark.asyncio
async def test_endpoint_stays_200_when_database_is_down() -> None:
    with (
        patch.dict(os.environ, DB_ENV, clear=True),
        patch(
            "payments_app.health.asyncpg.connect",
            AsyncMock(side_effect=ConnectionRefusedError("Connection refused")),
        ),
    ):
        async with AsyncClient(transport=ASGITransport(app=health.app), base_url="http://test") as ac:
            response = await ac.get("/health.php")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "disconnected"
    assert "refused" in data["db_error"]


@pytest.mark.asyncio
async def test_endpoint_without_database_env() -> None:
    with patch.dict(os.environ, {}, clear=True):
        async with AsyncClient(transport=ASGITransport(app=health.app), base_url="http://test") as ac:
            response = await ac.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["service"] == "payments-app"
    assert "timestamp" in data
    assert "database" not in data


@pytest.mark.asyncio
async def test_internal_failure_is_500() -> None:
    with patch(
        "payments_app.health.build_health_status",
        AsyncMock(side_effect=RuntimeError("clock exploded")),
    ):
        async with AsyncClient(transport=ASGITransport(app=health.app), base_url="http://test") as ac:
            response = await ac.get("/health.php")

    assert response.status_code == 500
    data = response.json()
    assert data["status"] == "error"
    assert data["message"] == "clock exploded"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_main_app_exposes_health(client: AsyncClient) -> None:
    with patch.dict(os.environ, {}, clear=True):
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_cli_prints_document(capsys: pytest.CaptureFixture[str]) -> None:
    with patch.dict(os.environ, {}, clear=True):
        exit_code = health.main()

    assert exit_code == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["status"] == "ok"
