from __future__ import annotations

from .health import HealthErrorResponse, HealthStatus
from .probes import (
    ConnectionDetails,
    KafkaConsumedMessage,
    KafkaConsumerResult,
    KafkaProbeResponse,
    KafkaProducerResult,
    KafkaTestSummary,
    ProbeErrorResponse,
    ProbeStepRead,
    RabbitMQProbeResponse,
    StorageProbeResponse,
)
from .user import UserContext

__all__ = [
    # health
    "HealthErrorResponse",
    "HealthStatus",
    # probes
    "ConnectionDetails",
    "KafkaConsumedMessage",
    "KafkaConsumerResult",
    "KafkaProbeResponse",
    "KafkaProducerResult",
    "KafkaTestSummary",
    "ProbeErrorResponse",
    "ProbeStepRead",
    "RabbitMQProbeResponse",
    "StorageProbeResponse",
    # user
    "UserContext",
]
