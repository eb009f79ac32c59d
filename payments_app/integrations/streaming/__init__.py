from __future__ import annotations

from .base import PollResult, PollStatus, StreamConsumer, StreamingClient
from .kafka import KafkaStreamingClient

__all__ = [
    "KafkaStreamingClient",
    "PollResult",
    "PollStatus",
    "StreamConsumer",
    "StreamingClient",
]
