from __future__ import annotations

import asyncio
import logging
from typing import Any

from payments_app.core.exceptions import ConfigurationMissing, RemoteProtocolError
from payments_app.integrations.streaming.base import (
    PollResult,
    PollStatus,
    StreamConsumer,
    StreamingClient,
)

logger = logging.getLogger(__name__)


def _load_client_library() -> Any:
    """Import confluent-kafka lazily so a broken native build is reported, not fatal."""
    try:
        import confluent_kafka
    except ImportError as e:
        raise ConfigurationMissing(
            f"confluent-kafka (librdkafka) is not available: {e}"
        ) from e
    return confluent_kafka


class KafkaStreamConsumer(StreamConsumer):
    """Consumer-group member backed by ``confluent_kafka.Consumer``.

    The underlying client is blocking, so each call runs in a worker thread.
    """

    def __init__(self, config: dict[str, Any]) -> None:
        self._kafka = _load_client_library()
        try:
            self._consumer = self._kafka.Consumer(config)
        except self._kafka.KafkaException as e:
            raise ConfigurationMissing(f"Invalid Kafka consumer configuration: {e}") from e
        self._closed = False

    async def subscribe(self, topics: list[str]) -> None:
        try:
            await asyncio.to_thread(self._consumer.subscribe, topics)
        except self._kafka.KafkaException as e:
            raise RemoteProtocolError(f"subscribe {topics} failed: {e}") from e

    async def poll(self, timeout: float) -> PollResult:
        try:
            message = await asyncio.to_thread(self._consumer.poll, timeout)
        except self._kafka.KafkaException as e:
            raise RemoteProtocolError(f"poll failed: {e}") from e
        return self._to_result(message)

    def _to_result(self, message: Any) -> PollResult:
        if message is None:
            return PollResult.timed_out()

        error = message.error()
        if error is not None:
            code = error.code()
            if code == self._kafka.KafkaError._PARTITION_EOF:
                return PollResult(
                    status=PollStatus.PARTITION_EOF,
                    partition=message.partition(),
                    offset=message.offset(),
                )
            if code == self._kafka.KafkaError._TIMED_OUT:
                return PollResult.timed_out()
            return PollResult(status=PollStatus.ERROR, error=error.str())

        key = message.key()
        _, timestamp = message.timestamp()
        return PollResult(
            status=PollStatus.MESSAGE,
            partition=message.partition(),
            offset=message.offset(),
            key=key.decode("utf-8", errors="replace") if key is not None else None,
            value=message.value(),
            timestamp=timestamp if timestamp >= 0 else None,
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._consumer.close)

    async def __aenter__(self) -> KafkaStreamConsumer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()


class KafkaStreamingClient(StreamingClient):
    """Kafka client on confluent-kafka implementing the StreamingClient protocol."""

    def __init__(
        self,
        brokers: str,
        security_protocol: str = "PLAINTEXT",
        sasl_mechanisms: str = "PLAIN",
        sasl_username: str | None = None,
        sasl_password: str | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            brokers: Comma separated bootstrap list, e.g. ``kafka:29092``.
            security_protocol: PLAINTEXT, SSL, SASL_PLAINTEXT or SASL_SSL.
            sasl_mechanisms: SASL mechanism when a SASL protocol is used.
            sasl_username: SASL username, if any.
            sasl_password: SASL password, never logged or echoed.

        Raises:
            ConfigurationMissing: no brokers configured, or the native client is absent.
        """
        if not brokers or not brokers.strip():
            raise ConfigurationMissing("Kafka brokers are not configured")
        self.brokers = brokers
        self._kafka = _load_client_library()

        self._base_config: dict[str, Any] = {
            "bootstrap.servers": brokers,
            "security.protocol": security_protocol,
            "socket.timeout.ms": 5000,
        }
        if security_protocol.upper().startswith("SASL"):
            self._base_config["sasl.mechanisms"] = sasl_mechanisms
            if sasl_username:
                self._base_config["sasl.username"] = sasl_username
            if sasl_password:
                self._base_config["sasl.password"] = sasl_password

    def producer_config(self) -> dict[str, Any]:
        return {**self._base_config, "message.timeout.ms": 10000}

    def consumer_config(self, group_id: str) -> dict[str, Any]:
        return {
            **self._base_config,
            "group.id": group_id,
            "auto.offset.reset": "earliest",
            "enable.auto.commit": True,
            "auto.commit.interval.ms": 1000,
            "session.timeout.ms": 30000,
            "enable.partition.eof": True,
        }

    async def produce(
        self,
        topic: str,
        key: str,
        value: bytes,
        flush_timeout: float,
    ) -> int:
        try:
            producer = self._kafka.Producer(self.producer_config())
        except self._kafka.KafkaException as e:
            raise ConfigurationMissing(f"Invalid Kafka producer configuration: {e}") from e

        def _produce_and_flush() -> int:
            producer.produce(topic, value=value, key=key)
            producer.poll(0)
            return int(producer.flush(flush_timeout))

        try:
            pending = await asyncio.to_thread(_produce_and_flush)
        except (self._kafka.KafkaException, BufferError) as e:
            raise RemoteProtocolError(f"produce to {topic!r} failed: {e}") from e

        if pending:
            logger.warning("%d Kafka message(s) still pending after %.1fs flush", pending, flush_timeout)
        return pending

    def consumer(self, group_id: str) -> KafkaStreamConsumer:
        return KafkaStreamConsumer(self.consumer_config(group_id))
