from __future__ import annotations

from collections.abc import AsyncGenerator, Callable

import httpx
from fastapi import Request

from payments_app.core.cache import get_cache
from payments_app.core.config import settings
from payments_app.core.database import get_db
from payments_app.core.redis import get_redis
from payments_app.integrations.broker import BrokerClient, RabbitMQClient
from payments_app.integrations.streaming import KafkaStreamingClient, StreamingClient
from payments_app.schemas import UserContext

# Re-export for convenient imports
__all__ = [
    "get_broker_factory",
    "get_cache",
    "get_db",
    "get_http_client",
    "get_redis",
    "get_streaming_factory",
    "get_user_context",
]


def get_broker_factory() -> Callable[[], BrokerClient]:
    """Factory for a fresh RabbitMQ client; the probe owns its whole lifetime."""

    def _factory() -> BrokerClient:
        return RabbitMQClient(
            host=settings.rabbitmq_host,
            port=settings.rabbitmq_port,
            user=settings.rabbitmq_user,
            password=settings.rabbitmq_password,
            virtualhost=settings.rabbitmq_vhost,
            connect_timeout=settings.rabbitmq_connect_timeout,
        )

    return _factory


def get_streaming_factory() -> Callable[[], StreamingClient]:
    """Factory for a Kafka client. Construction errors surface inside the probe."""

    def _factory() -> StreamingClient:
        return KafkaStreamingClient(
            brokers=settings.kafka_brokers,
            security_protocol=settings.kafka_security_protocol,
            sasl_mechanisms=settings.kafka_sasl_mechanisms,
            sasl_username=settings.kafka_sasl_username,
            sasl_password=settings.kafka_sasl_password,
        )

    return _factory


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=httpx.Timeout(settings.microservice_timeout)) as client:
        yield client


def get_user_context(request: Request) -> UserContext | None:
    """User attached by UserContextMiddleware, or None for anonymous requests."""
    user = getattr(request.state, "authenticated_user", None)
    if user is None:
        return None
    return UserContext(**user)
