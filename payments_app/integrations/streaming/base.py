from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, Self


class PollStatus(StrEnum):
    MESSAGE = "message"
    PARTITION_EOF = "partition_eof"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class PollResult:
    """Outcome of a single consumer poll."""

    status: PollStatus
    partition: int | None = None
    offset: int | None = None
    key: str | None = None
    value: bytes | None = None
    timestamp: int | None = None  # epoch milliseconds
    error: str | None = None

    @classmethod
    def timed_out(cls) -> PollResult:
        return cls(status=PollStatus.TIMED_OUT)


class StreamConsumer(Protocol):
    """A consumer-group member. Leaving the context closes it."""

    async def subscribe(self, topics: list[str]) -> None:
        ...

    async def poll(self, timeout: float) -> PollResult:
        ...

    async def close(self) -> None:
        ...

    async def __aenter__(self) -> Self:
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        ...


class StreamingClient(Protocol):
    """Kafka-style streaming platform interface used by the streaming probe."""

    brokers: str

    async def produce(
        self,
        topic: str,
        key: str,
        value: bytes,
        flush_timeout: float,
    ) -> int:
        """Publish one record and flush. Returns the number of records still pending."""
        ...

    def consumer(self, group_id: str) -> StreamConsumer:
        ...
