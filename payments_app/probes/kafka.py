"""Streaming platform round-trip probe (``/test/kafka``).

Two phases:

1. Producer: publish one JSON record with a fixed key and flush with a bound. The flush
   must leave nothing pending; this is the primary step.
2. Consumer: only after a successful produce. Join the test consumer group and poll until
   either the wall-clock bound or the message cap is reached. Only real records are
   collected; end-of-partition and poll timeouts are expected and ignored.

The consumer group may legitimately see none of its own record (another member may have
claimed it, offsets may already be past it), so an empty consumer phase degrades the
outcome to ``partial_success`` rather than ``error``.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from payments_app.core.exceptions import ConfigurationMissing, ErrorKind, classify_exception
from payments_app.integrations.streaming import PollStatus, StreamConsumer, StreamingClient
from payments_app.probes.outcome import ProbeOutcome, StepRecorder
from payments_app.schemas import (
    KafkaConsumedMessage,
    KafkaConsumerResult,
    KafkaProbeResponse,
    KafkaProducerResult,
    KafkaTestSummary,
    ProbeErrorResponse,
)

logger = logging.getLogger(__name__)

POSSIBLE_REASONS = [
    "Message may have been consumed by another consumer",
    "Consumer group may have different offset settings",
    "Topic may not have retained the message",
    "Timing issue between producer and consumer",
]


@dataclass(frozen=True)
class KafkaProbeConfig:
    brokers: str
    topic: str = "payments-test-topic"
    group_id: str = "payments-test-consumer-group"
    key: str = "payments-test-key"
    flush_timeout: float = 10.0
    consume_timeout: float = 15.0
    poll_timeout: float = 2.0
    max_messages: int = 5
    service: str = "payments-app"


@dataclass
class ConsumeReport:
    messages: list[KafkaConsumedMessage]
    poll_errors: list[str]


def build_test_message(config: KafkaProbeConfig) -> dict[str, Any]:
    return {
        "test": "Kafka connection and messaging test",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": config.service,
        "message_id": uuid.uuid4().hex,
        "broker": config.brokers,
        "test_type": "producer_consumer_test",
    }


def _decode_payload(value: bytes | None) -> Any:
    if value is None:
        return None
    text = value.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


async def consume_messages(
    consumer: StreamConsumer,
    config: KafkaProbeConfig,
) -> ConsumeReport:
    """Poll ``consumer`` until the time bound or the message cap is hit."""
    report = ConsumeReport(messages=[], poll_errors=[])
    deadline = time.monotonic() + config.consume_timeout

    while time.monotonic() < deadline and len(report.messages) < config.max_messages:
        result = await consumer.poll(config.poll_timeout)

        match result.status:
            case PollStatus.MESSAGE:
                report.messages.append(
                    KafkaConsumedMessage(
                        partition=result.partition,
                        offset=result.offset,
                        key=result.key,
                        payload=_decode_payload(result.value),
                        timestamp=result.timestamp,
                        consumed_at=datetime.now(UTC).isoformat(),
                    )
                )
            case PollStatus.PARTITION_EOF | PollStatus.TIMED_OUT:
                continue
            case PollStatus.ERROR:
                logger.warning("Ignoring Kafka poll error: %s", result.error)
                report.poll_errors.append(result.error or "unknown error")

    return report


def _error(kind: ErrorKind, body: ProbeErrorResponse) -> ProbeOutcome:
    return ProbeOutcome.error(kind, body.model_dump(mode="json", exclude_none=True), body.error)


async def run_kafka_probe(
    client_factory: Callable[[], StreamingClient],
    config: KafkaProbeConfig,
) -> ProbeOutcome:
    recorder = StepRecorder()

    if not config.brokers.strip():
        return _error(
            ErrorKind.CONFIGURATION_MISSING,
            ProbeErrorResponse(
                message="Kafka brokers are not configured",
                error_kind=ErrorKind.CONFIGURATION_MISSING,
                note="Ensure KAFKA_BROKERS is set in the environment variables",
            ),
        )

    try:
        client = client_factory()
    except ConfigurationMissing as e:
        return _error(
            e.kind,
            ProbeErrorResponse(
                message="Kafka client could not be created",
                error=str(e),
                error_kind=e.kind,
                note="confluent-kafka with a working librdkafka is required for Kafka functionality",
                broker_attempted=config.brokers,
            ),
        )

    try:
        return await _run_phases(client, config, recorder)
    except Exception as e:
        kind = classify_exception(e)
        logger.exception("Kafka probe failed (%s)", kind)
        return _error(
            kind,
            ProbeErrorResponse(
                message="Kafka test failed",
                error=str(e),
                error_kind=kind,
                broker_attempted=config.brokers,
                client_available=True,
                steps=recorder.read(),
            ),
        )


async def _run_phases(
    client: StreamingClient,
    config: KafkaProbeConfig,
    recorder: StepRecorder,
) -> ProbeOutcome:
    published = build_test_message(config)

    # Phase 1: producer
    try:
        pending = await recorder.run(
            "produce",
            client.produce(
                config.topic,
                config.key,
                json.dumps(published).encode(),
                config.flush_timeout,
            ),
            record_value=True,
        )
    except Exception as e:
        kind = classify_exception(e)
        logger.exception("Kafka producer failed (%s)", kind)
        return _error(
            kind,
            ProbeErrorResponse(
                message="Kafka producer test failed",
                error=str(e),
                error_kind=kind,
                broker_used=config.brokers,
                topic=config.topic,
                steps=recorder.read(),
            ),
        )

    if pending != 0:
        return _error(
            ErrorKind.OPERATION_TIMEOUT,
            ProbeErrorResponse(
                message="Kafka producer failed",
                error=f"{pending} message(s) still pending after {config.flush_timeout:g}s flush",
                error_kind=ErrorKind.OPERATION_TIMEOUT,
                broker_used=config.brokers,
                topic=config.topic,
                producer_result=KafkaProducerResult(
                    success=False,
                    note="Message publishing failed or timed out",
                ),
                steps=recorder.read(),
            ),
        )

    # Phase 2: consumer. A consumer that cannot be built is an error, not a partial result.
    consumer = client.consumer(config.group_id)
    try:
        async with consumer:
            await recorder.run("subscribe", consumer.subscribe([config.topic]))
            report = await recorder.run("consume", consume_messages(consumer, config))
    except Exception as e:
        logger.warning("Kafka consumer phase failed: %s", e)
        return ProbeOutcome.partial(
            str(e),
            KafkaProbeResponse(
                status="partial_success",
                message="Kafka producer worked but consumer test failed",
                broker_used=config.brokers,
                topic=config.topic,
                group_id=config.group_id,
                producer_result=KafkaProducerResult(success=True, published_message=published),
                consumer_error=str(e),
                steps=recorder.read(),
            ).model_dump(mode="json", exclude_none=True),
        )

    return classify_round_trip(config, published, report, recorder)


def classify_round_trip(
    config: KafkaProbeConfig,
    published: dict[str, Any],
    report: ConsumeReport,
    recorder: StepRecorder,
) -> ProbeOutcome:
    """Produce succeeded; decide between success and partial_success."""
    round_trip = any(m.key == config.key for m in report.messages)
    poll_errors = report.poll_errors or None

    if round_trip:
        consumed = len(report.messages)
        return ProbeOutcome.success(
            KafkaProbeResponse(
                status="success",
                message="Kafka producer and consumer test successful",
                broker_used=config.brokers,
                topic=config.topic,
                group_id=config.group_id,
                producer_result=KafkaProducerResult(
                    success=True,
                    published_message=published,
                    flush_result="success",
                ),
                consumer_result=KafkaConsumerResult(
                    success=True,
                    messages_consumed=consumed,
                    consumed_messages=report.messages,
                    timeout_used=f"{config.consume_timeout:g} seconds",
                    poll_errors=poll_errors,
                ),
                test_summary=KafkaTestSummary(
                    total_messages_published=1,
                    total_messages_consumed=consumed,
                    round_trip_test="passed",
                ),
                steps=recorder.read(),
            ).model_dump(mode="json", exclude_none=True)
        )

    logger.warning(
        "Kafka produce succeeded but no record keyed %r was consumed within %gs",
        config.key,
        config.consume_timeout,
    )
    return ProbeOutcome.partial(
        "no matching record consumed within the time bound",
        KafkaProbeResponse(
            status="partial_success",
            message="Kafka producer successful, but no messages were consumed (this may be normal)",
            broker_used=config.brokers,
            topic=config.topic,
            group_id=config.group_id,
            producer_result=KafkaProducerResult(success=True, published_message=published),
            consumer_result=KafkaConsumerResult(
                success=False,
                messages_consumed=len(report.messages),
                consumed_messages=report.messages or None,
                note="No messages were available for consumption within the timeout period",
                poll_errors=poll_errors,
            ),
            possible_reasons=POSSIBLE_REASONS,
            steps=recorder.read(),
        ).model_dump(mode="json", exclude_none=True),
    )
