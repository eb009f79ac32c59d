from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProbeStepRead(BaseModel):
    operation: str
    succeeded: bool
    value: Any = None
    error: str | None = None
    duration_ms: float


class StorageProbeResponse(BaseModel):
    cacheTest: Any = None
    redisTest: Any = None
    dbTest: dict[str, Any] | None = None


class ConnectionDetails(BaseModel):
    host: str
    port: int
    user: str


class RabbitMQProbeResponse(BaseModel):
    status: str
    message: str
    connection_details: ConnectionDetails
    published_message: dict[str, Any]
    received_message: dict[str, Any] | None = None
    steps: list[ProbeStepRead] = Field(default_factory=list)


class ProbeErrorResponse(BaseModel):
    """Error body shared by every probe. Rendered with ``exclude_none``."""

    status: str = "error"
    message: str
    error: str | None = None
    error_kind: str | None = None
    note: str | None = None
    connection_details: ConnectionDetails | None = None
    broker_used: str | None = None
    broker_attempted: str | None = None
    topic: str | None = None
    client_available: bool | None = None
    producer_result: KafkaProducerResult | None = None
    steps: list[ProbeStepRead] | None = None


class KafkaProducerResult(BaseModel):
    success: bool
    published_message: dict[str, Any] | None = None
    flush_result: str | None = None
    note: str | None = None


class KafkaConsumedMessage(BaseModel):
    partition: int | None = None
    offset: int | None = None
    key: str | None = None
    payload: Any = None
    timestamp: int | None = None
    consumed_at: str


class KafkaConsumerResult(BaseModel):
    success: bool
    messages_consumed: int
    consumed_messages: list[KafkaConsumedMessage] | None = None
    timeout_used: str | None = None
    note: str | None = None
    poll_errors: list[str] | None = None


class KafkaTestSummary(BaseModel):
    total_messages_published: int
    total_messages_consumed: int
    round_trip_test: str


class KafkaProbeResponse(BaseModel):
    """Success and partial-success body. Rendered with ``exclude_none``."""

    status: str
    message: str
    broker_used: str
    topic: str
    group_id: str | None = None
    producer_result: KafkaProducerResult
    consumer_result: KafkaConsumerResult | None = None
    consumer_error: str | None = None
    test_summary: KafkaTestSummary | None = None
    possible_reasons: list[str] | None = None
    steps: list[ProbeStepRead] = Field(default_factory=list)


ProbeErrorResponse.model_rebuild()
