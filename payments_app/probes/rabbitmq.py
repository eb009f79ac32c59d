"""Message broker round-trip probe (``/test/rabbitmq``).

Sequence: connect, declare a transient queue, publish one JSON message, wait a bounded
time for it to come back, acknowledge it, delete the queue, close channel and connection.
Publishing is the primary step. A message that does not come back in time leaves
``received_message`` empty but does not fail the probe.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from payments_app.core.exceptions import classify_exception
from payments_app.integrations.broker import BrokerClient
from payments_app.probes.outcome import ProbeOutcome, StepRecorder
from payments_app.schemas import ConnectionDetails, ProbeErrorResponse, RabbitMQProbeResponse

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class RabbitMQProbeConfig:
    host: str
    port: int
    user: str
    queue: str = "test_queue"
    consume_timeout: float = 2.0
    service: str = "payments-app"

    @property
    def connection_details(self) -> ConnectionDetails:
        return ConnectionDetails(host=self.host, port=self.port, user=self.user)


def build_test_message(service: str) -> dict[str, Any]:
    return {
        "test": "RabbitMQ connection successful",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": service,
    }


def decode_body(body: bytes | None) -> dict[str, Any] | None:
    if body is None:
        return None
    try:
        decoded = json.loads(body)
    except ValueError:
        logger.warning("Received a non-JSON message from the test queue")
        return None
    return decoded if isinstance(decoded, dict) else None


async def _delete_after_failure(client: BrokerClient, queue: str, recorder: StepRecorder) -> None:
    # the round-trip failure stays the reported cause
    try:
        await recorder.run("delete_queue", client.delete_queue(queue))
    except Exception:
        logger.warning("Could not delete %s after a failed round trip", queue, exc_info=True)


async def run_rabbitmq_probe(
    broker_factory: Callable[[], BrokerClient],
    config: RabbitMQProbeConfig,
) -> ProbeOutcome:
    recorder = StepRecorder()
    published = build_test_message(config.service)
    received: dict[str, Any] | None = None

    try:
        client = broker_factory()
        try:
            await recorder.run("connect", client.connect())
            await recorder.run("declare_queue", client.declare_queue(config.queue))
            try:
                await recorder.run(
                    "publish",
                    client.publish(config.queue, json.dumps(published).encode(), CONTENT_TYPE),
                )
                message = await recorder.run(
                    "consume", client.consume_one(config.queue, config.consume_timeout)
                )
                received = decode_body(message)
            except Exception:
                await _delete_after_failure(client, config.queue, recorder)
                raise
            await recorder.run("delete_queue", client.delete_queue(config.queue))
        finally:
            await client.close()
    except Exception as e:
        kind = classify_exception(e)
        logger.exception("RabbitMQ probe failed (%s)", kind)
        body = ProbeErrorResponse(
            message="RabbitMQ connection failed",
            error=str(e),
            error_kind=kind,
            connection_details=config.connection_details,
            steps=recorder.read(),
        )
        return ProbeOutcome.error(kind, body.model_dump(mode="json", exclude_none=True), str(e))

    if received is None:
        logger.info("RabbitMQ publish succeeded, nothing consumed within %.1fs", config.consume_timeout)

    return ProbeOutcome.success(
        RabbitMQProbeResponse(
            status="success",
            message="RabbitMQ connection and message handling successful",
            connection_details=config.connection_details,
            published_message=published,
            received_message=received,
            steps=recorder.read(),
        ).model_dump(mode="json")
    )
