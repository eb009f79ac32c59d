import asyncio
import json
import os
import sys

# Add project root to path so we can import payments_app
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from payments_app.api.deps import get_broker_factory, get_streaming_factory
from payments_app.core.config import settings
from payments_app.probes import (
    KafkaProbeConfig,
    RabbitMQProbeConfig,
    run_kafka_probe,
    run_rabbitmq_probe,
)


def report(name: str, outcome) -> None:
    marker = "✅" if outcome.http_status == 200 else "❌"
    print(f"{marker} {name}: {outcome.status} (HTTP {outcome.http_status})")
    print(json.dumps(outcome.body, indent=2, default=str))


async def main():
    print("--- Verifying RabbitMQ ---")
    print(f"Broker: {settings.rabbitmq_host}:{settings.rabbitmq_port} as {settings.rabbitmq_user}")
    outcome = await run_rabbitmq_probe(
        get_broker_factory(),
        RabbitMQProbeConfig(
            host=settings.rabbitmq_host,
            port=settings.rabbitmq_port,
            user=settings.rabbitmq_user,
            queue=settings.rabbitmq_test_queue,
            consume_timeout=settings.rabbitmq_consume_timeout,
        ),
    )
    report("RabbitMQ", outcome)

    print("\n--- Verifying Kafka ---")
    print(f"Brokers: {settings.kafka_brokers}, topic: {settings.kafka_test_topic}")
    outcome = await run_kafka_probe(
        get_streaming_factory(),
        KafkaProbeConfig(
            brokers=settings.kafka_brokers,
            topic=settings.kafka_test_topic,
            group_id=settings.kafka_test_group_id,
            key=settings.kafka_test_key,
            flush_timeout=settings.kafka_flush_timeout,
            consume_timeout=settings.kafka_consume_timeout,
            poll_timeout=settings.kafka_poll_timeout,
            max_messages=settings.kafka_max_messages,
        ),
    )
    report("Kafka", outcome)


if __name__ == "__main__":
    asyncio.run(main())
