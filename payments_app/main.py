from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from payments_app.core.config import settings
from payments_app.core.database import engine
from payments_app.core.logging import setup_logging
from payments_app.core.middleware import UserContextMiddleware
from payments_app.core.redis import cache_redis_client, redis_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # Shutdown
    await redis_client.aclose()
    await cache_redis_client.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(UserContextMiddleware)

    # Register routes
    from payments_app.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
