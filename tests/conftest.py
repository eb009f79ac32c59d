from __future__ import annotations

import os

os.environ["APP_LOG_LEVEL"] = "WARNING"
os.environ["RABBITMQ_PASSWORD"] = "super-secret-rabbit"
os.environ["DB_PASSWORD"] = "super-secret-db"

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from payments_app.integrations.streaming import PollResult, PollStatus
from payments_app.main import app


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the storage probe and the cache."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.data[key] = value
        self.expiry[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.data.get(key)


class FakeBroker:
    """In-memory BrokerClient. Set ``fail_on[operation]`` to make a step raise."""

    def __init__(self, drop_messages: bool = False) -> None:
        self.queues: dict[str, list[bytes]] = {}
        self.fail_on: dict[str, Exception] = {}
        self.drop_messages = drop_messages
        self.content_types: list[str] = []
        self.deleted: list[str] = []
        self.connected = False
        self.closed = False

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    async def connect(self) -> None:
        self._maybe_fail("connect")
        self.connected = True

    async def declare_queue(self, name: str) -> None:
        self._maybe_fail("declare_queue")
        self.queues.setdefault(name, [])

    async def publish(self, queue: str, body: bytes, content_type: str) -> None:
        self._maybe_fail("publish")
        self.content_types.append(content_type)
        if not self.drop_messages:
            self.queues[queue].append(body)

    async def consume_one(self, queue: str, timeout: float) -> bytes | None:
        self._maybe_fail("consume")
        pending = self.queues.get(queue) or []
        return pending.pop(0) if pending else None

    async def delete_queue(self, name: str) -> None:
        self._maybe_fail("delete_queue")
        self.queues.pop(name, None)
        self.deleted.append(name)

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeBroker:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class FakeConsumer:
    def __init__(self, results: list[PollResult]) -> None:
        self.results = results
        self.subscribe_error: Exception | None = None
        self.subscribed: list[str] = []
        self.polls = 0
        self.closed = False

    async def subscribe(self, topics: list[str]) -> None:
        if self.subscribe_error is not None:
            raise self.subscribe_error
        self.subscribed = topics

    async def poll(self, timeout: float) -> PollResult:
        self.polls += 1
        if self.results:
            return self.results.pop(0)
        return PollResult.timed_out()

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeConsumer:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class FakeStreamingClient:
    """In-memory StreamingClient.

    With ``echo=True`` every produced record is queued for the consumer, so the probe
    sees its own message come back.
    """

    def __init__(
        self,
        brokers: str = "fake-kafka:9092",
        pending: int = 0,
        echo: bool = True,
        produce_error: Exception | None = None,
    ) -> None:
        self.brokers = brokers
        self.pending = pending
        self.echo = echo
        self.produce_error = produce_error
        self.produced: list[tuple[str, str, bytes]] = []
        self.consumer_instance = FakeConsumer([])
        self.group_id: str | None = None
        self.consumer_error: Exception | None = None

    async def produce(self, topic: str, key: str, value: bytes, flush_timeout: float) -> int:
        if self.produce_error is not None:
            raise self.produce_error
        self.produced.append((topic, key, value))
        if self.echo and not self.pending:
            offset = len(self.produced) - 1
            self.consumer_instance.results.append(
                PollResult(
                    status=PollStatus.MESSAGE,
                    partition=0,
                    offset=offset,
                    key=key,
                    value=value,
                    timestamp=1_700_000_000_000,
                )
            )
        return self.pending

    def consumer(self, group_id: str) -> FakeConsumer:
        if self.consumer_error is not None:
            raise self.consumer_error
        self.group_id = group_id
        return self.consumer_instance


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def fake_streaming() -> FakeStreamingClient:
    return FakeStreamingClient()
