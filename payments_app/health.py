"""Standalone health check.

Answers "is the process alive and can it reach its database" without touching the rest
of the package: no settings object, no engine, no Redis clients. Only raw environment
variables are read, so it can run before (or instead of) the main application:

    uvicorn payments_app.health:app --port 8080
    python -m payments_app.health

The process is reported ``ok`` even when the database is unreachable; the database
state is reported separately and never changes the HTTP status.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping
from datetime import datetime

import asyncpg
from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse

from payments_app.schemas.health import HealthErrorResponse, HealthStatus

logger = logging.getLogger(__name__)

SERVICE_NAME = "payments-app"
DB_CONNECT_TIMEOUT = 5.0

router = APIRouter()


def _timestamp() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


async def check_database(environ: Mapping[str, str]) -> str | None:
    """Open and close a direct connection. Returns None on success, the error text otherwise."""
    try:
        conn = await asyncpg.connect(
            host=environ["DB_HOST"],
            port=int(environ.get("DB_PORT") or 5432),
            database=environ["DB_DATABASE"],
            user=environ.get("DB_USERNAME"),
            password=environ.get("DB_PASSWORD"),
            timeout=DB_CONNECT_TIMEOUT,
        )
    except Exception as e:
        return str(e) or type(e).__name__
    await conn.close()
    return None


async def build_health_status(environ: Mapping[str, str]) -> HealthStatus:
    health = HealthStatus(status="ok", timestamp=_timestamp(), service=SERVICE_NAME)

    if environ.get("DB_HOST") and environ.get("DB_DATABASE"):
        db_error = await check_database(environ)
        if db_error is None:
            health.database = "connected"
        else:
            logger.warning("Health check: database unreachable: %s", db_error)
            health.database = "disconnected"
            health.db_error = db_error

    return health


async def health_response(environ: Mapping[str, str]) -> tuple[int, dict[str, str]]:
    try:
        health = await build_health_status(environ)
    except Exception as e:
        logger.exception("Health check failed")
        error = HealthErrorResponse(message=str(e), timestamp=_timestamp())
        return 500, error.model_dump()
    return 200, health.model_dump(exclude_none=True)


@router.get("/health")
@router.get("/health.php", include_in_schema=False)
async def health_check() -> JSONResponse:
    """Process liveness plus a best-effort database ping."""
    status_code, body = await health_response(os.environ)
    return JSONResponse(content=body, status_code=status_code)


app = FastAPI(title=f"{SERVICE_NAME} health", docs_url=None, redoc_url=None)
app.include_router(router)


def main() -> int:
    status_code, body = asyncio.run(health_response(os.environ))
    print(json.dumps(body, indent=4))
    return 0 if status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
