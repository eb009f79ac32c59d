from __future__ import annotations

import asyncio
import logging

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractQueue
from aio_pika.exceptions import AMQPConnectionError, AMQPError

from payments_app.core.exceptions import ConnectionFailure, OperationTimeout, RemoteProtocolError
from payments_app.integrations.broker.base import BrokerClient

logger = logging.getLogger(__name__)


class RabbitMQClient(BrokerClient):
    """RabbitMQ client on aio-pika implementing the BrokerClient protocol."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        virtualhost: str = "/",
        connect_timeout: float = 5.0,
    ) -> None:
        """Initialize the client. No connection is opened until ``connect()``.

        Args:
            host: Broker hostname.
            port: AMQP port.
            user: Login name.
            password: Login password, never logged or echoed.
            virtualhost: AMQP virtual host.
            connect_timeout: Seconds to wait for the connection handshake.
        """
        self.host = host
        self.port = port
        self.user = user
        self._password = password
        self.virtualhost = virtualhost
        self.connect_timeout = connect_timeout

        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None
        self._queues: dict[str, AbstractQueue] = {}

    @property
    def channel(self) -> AbstractChannel:
        if self._channel is None:
            raise RuntimeError("RabbitMQClient is not connected")
        return self._channel

    async def connect(self) -> None:
        logger.info("Connecting to RabbitMQ at %s:%s as %s", self.host, self.port, self.user)
        try:
            self._connection = await aio_pika.connect(
                host=self.host,
                port=self.port,
                login=self.user,
                password=self._password,
                virtualhost=self.virtualhost,
                timeout=self.connect_timeout,
            )
            self._channel = await self._connection.channel()
        except TimeoutError as e:
            await self.close()
            raise OperationTimeout(
                f"RabbitMQ at {self.host}:{self.port} did not answer within {self.connect_timeout:g}s"
            ) from e
        except (AMQPConnectionError, OSError) as e:
            await self.close()
            raise ConnectionFailure(
                f"Cannot connect to RabbitMQ at {self.host}:{self.port}: {e}"
            ) from e

    async def declare_queue(self, name: str) -> None:
        try:
            self._queues[name] = await self.channel.declare_queue(
                name,
                durable=False,
                exclusive=False,
                auto_delete=False,
            )
        except AMQPError as e:
            raise RemoteProtocolError(f"queue_declare {name!r} failed: {e}") from e

    async def publish(self, queue: str, body: bytes, content_type: str) -> None:
        try:
            await self.channel.default_exchange.publish(
                aio_pika.Message(body=body, content_type=content_type),
                routing_key=queue,
            )
        except AMQPError as e:
            raise RemoteProtocolError(f"basic_publish to {queue!r} failed: {e}") from e

    async def consume_one(self, queue: str, timeout: float) -> bytes | None:
        declared = self._queues.get(queue)
        if declared is None:
            declared = await self.channel.get_queue(queue, ensure=False)

        try:
            return await asyncio.wait_for(self._next_body(declared), timeout=timeout)
        except TimeoutError:
            logger.info("No message on %s within %.1fs", queue, timeout)
            return None
        except AMQPError as e:
            raise RemoteProtocolError(f"basic_consume on {queue!r} failed: {e}") from e

    @staticmethod
    async def _next_body(queue: AbstractQueue) -> bytes | None:
        async with queue.iterator() as messages:
            async for message in messages:
                # process() acknowledges on clean exit
                async with message.process():
                    return message.body
        return None

    async def delete_queue(self, name: str) -> None:
        self._queues.pop(name, None)
        try:
            await self.channel.queue_delete(name)
        except AMQPError as e:
            raise RemoteProtocolError(f"queue_delete {name!r} failed: {e}") from e

    async def close(self) -> None:
        """Close the channel, then the connection."""
        channel, self._channel = self._channel, None
        connection, self._connection = self._connection, None
        try:
            if channel is not None and not channel.is_closed:
                await channel.close()
        finally:
            if connection is not None and not connection.is_closed:
                await connection.close()

    async def __aenter__(self) -> RabbitMQClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
