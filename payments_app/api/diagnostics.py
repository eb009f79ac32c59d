from __future__ import annotations

import logging
from collections.abc import Callable

import httpx
import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from payments_app.api.deps import (
    get_broker_factory,
    get_cache,
    get_db,
    get_http_client,
    get_redis,
    get_streaming_factory,
)
from payments_app.core.cache import CacheStore
from payments_app.core.config import settings
from payments_app.integrations.broker import BrokerClient
from payments_app.integrations.streaming import StreamingClient
from payments_app.probes import (
    KafkaProbeConfig,
    ProbeOutcome,
    RabbitMQProbeConfig,
    StorageProbeConfig,
    fetch_upstream,
    run_kafka_probe,
    run_rabbitmq_probe,
    run_storage_probe,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def render(outcome: ProbeOutcome) -> JSONResponse:
    return JSONResponse(content=outcome.body, status_code=outcome.http_status)


@router.get("/dbs")
async def probe_dbs(
    cache: CacheStore = Depends(get_cache),
    redis: aioredis.Redis = Depends(get_redis),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Round-trip a value through cache and KV store and read one SQL row."""
    outcome = await run_storage_probe(
        cache,
        redis,
        db,
        StorageProbeConfig(table=settings.db_probe_table),
    )
    return render(outcome)


@router.get("/rabbitmq")
async def probe_rabbitmq(
    broker_factory: Callable[[], BrokerClient] = Depends(get_broker_factory),
) -> JSONResponse:
    """Publish to and consume from a transient RabbitMQ queue."""
    outcome = await run_rabbitmq_probe(
        broker_factory,
        RabbitMQProbeConfig(
            host=settings.rabbitmq_host,
            port=settings.rabbitmq_port,
            user=settings.rabbitmq_user,
            queue=settings.rabbitmq_test_queue,
            consume_timeout=settings.rabbitmq_consume_timeout,
            service=settings.app_name,
        ),
    )
    return render(outcome)


@router.get("/kafka")
async def probe_kafka(
    client_factory: Callable[[], StreamingClient] = Depends(get_streaming_factory),
) -> JSONResponse:
    """Produce a record to Kafka and try to consume it back."""
    outcome = await run_kafka_probe(
        client_factory,
        KafkaProbeConfig(
            brokers=settings.kafka_brokers,
            topic=settings.kafka_test_topic,
            group_id=settings.kafka_test_group_id,
            key=settings.kafka_test_key,
            flush_timeout=settings.kafka_flush_timeout,
            consume_timeout=settings.kafka_consume_timeout,
            poll_timeout=settings.kafka_poll_timeout,
            max_messages=settings.kafka_max_messages,
            service=settings.app_name,
        ),
    )
    return render(outcome)


@router.get("/microservice")
async def probe_microservice(
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Return the peer service's response body verbatim."""
    try:
        upstream = await fetch_upstream(client, settings.microservice_url)
    except httpx.HTTPError as e:
        logger.warning("Upstream %s unreachable: %s", settings.microservice_url, e)
        return JSONResponse(
            content={"status": "error", "message": str(e) or type(e).__name__},
            status_code=502,
        )
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
    )
