from __future__ import annotations

from typing import Protocol, Self


class BrokerClient(Protocol):
    """AMQP-style broker interface used by the broker probe.

    Entering the context opens the connection and channel; leaving it closes both,
    whatever happened inside.
    """

    async def connect(self) -> None:
        """Open the connection and a channel."""
        ...

    async def declare_queue(self, name: str) -> None:
        """Declare a transient (non-durable) queue."""
        ...

    async def publish(self, queue: str, body: bytes, content_type: str) -> None:
        """Publish to ``queue`` through the default exchange."""
        ...

    async def consume_one(self, queue: str, timeout: float) -> bytes | None:
        """Receive and acknowledge one message. Returns None if none arrives in time."""
        ...

    async def delete_queue(self, name: str) -> None:
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
