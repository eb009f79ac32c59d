from __future__ import annotations

from .kafka import KafkaProbeConfig, run_kafka_probe
from .outcome import OutcomeStatus, ProbeOutcome, ProbeStep, StepRecorder
from .rabbitmq import RabbitMQProbeConfig, run_rabbitmq_probe
from .storage import StorageProbeConfig, run_storage_probe
from .upstream import fetch_upstream

__all__ = [
    "KafkaProbeConfig",
    "OutcomeStatus",
    "ProbeOutcome",
    "ProbeStep",
    "RabbitMQProbeConfig",
    "StepRecorder",
    "StorageProbeConfig",
    "fetch_upstream",
    "run_kafka_probe",
    "run_rabbitmq_probe",
    "run_storage_probe",
]
