"""TaskProducer — publish task envelopes to durable queues."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPError

from .correlation import generate_correlation_id, get_correlation_id
from .envelope import TaskEnvelope
from .exceptions import BrokerConnectionError, PublishError
from .serialization import TaskSerializer

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel

    from .connection import BrokerConnection

logger = logging.getLogger("courier.producer")


class TaskProducer:
    """Hands tasks to durable queues without waiting for consumption.

    Publishes go through the default exchange with the queue name as routing
    key, persistent delivery mode, and publisher confirms, so ``enqueue``
    returns once the broker has accepted the message.

    The producer owns one channel. A lock serialises publishes on it, so the
    channel is never used by two coroutines at once.
    """

    def __init__(
        self,
        connection: BrokerConnection,
        *,
        serializer: TaskSerializer | None = None,
    ) -> None:
        self._connection = connection
        self._serializer = serializer or TaskSerializer()
        self._channel: AbstractChannel | None = None
        self._declared: set[str] = set()
        self._lock = asyncio.Lock()

    async def _ensure_channel(self) -> AbstractChannel:
        if self._channel is None or self._channel.is_closed:
            self._channel = await self._connection.create_channel(
                publisher_confirms=True
            )
            self._declared.clear()
        return self._channel

    async def _declare(self, channel: AbstractChannel, queue_name: str) -> None:
        if queue_name in self._declared:
            return
        await channel.declare_queue(
            queue_name, durable=True, exclusive=False, auto_delete=False
        )
        self._declared.add(queue_name)

    async def declare_queue(self, queue_name: str) -> None:
        """Declare *queue_name* as durable ahead of the first publish."""
        async with self._lock:
            try:
                channel = await self._ensure_channel()
                await self._declare(channel, queue_name)
            except BrokerConnectionError as e:
                raise PublishError(queue_name, str(e)) from e
            except (AMQPError, ConnectionError, OSError, RuntimeError) as e:
                self._channel = None
                raise PublishError(queue_name, str(e)) from e

    async def enqueue(
        self,
        queue_name: str,
        payload: dict[str, object],
        *,
        headers: dict[str, str] | None = None,
    ) -> TaskEnvelope:
        """Wrap *payload* in an envelope and publish it to *queue_name*.

        Returns the published envelope. Raises ``PublishError`` if the
        broker cannot be reached or rejects the publish.
        """
        envelope = TaskEnvelope(
            queue_name=queue_name,
            payload=payload,
            correlation_id=get_correlation_id() or generate_correlation_id(),
            headers=headers or {},
        )
        await self.publish_envelope(envelope)
        return envelope

    async def publish_envelope(self, envelope: TaskEnvelope) -> None:
        """Publish an already-built envelope to ``envelope.queue_name``."""
        try:
            body = self._serializer.serialize(envelope)
        except (TypeError, ValueError) as e:
            raise PublishError(
                envelope.queue_name, f"cannot serialize task: {e}"
            ) from e
        await self.publish_raw(
            envelope.queue_name,
            body,
            message_id=envelope.task_id,
            correlation_id=envelope.correlation_id,
            headers=dict(envelope.headers),
        )
        logger.debug("Task %s enqueued to %s", envelope.task_id, envelope.queue_name)

    async def publish_raw(
        self,
        queue_name: str,
        body: bytes,
        *,
        message_id: str | None = None,
        correlation_id: str | None = None,
        headers: dict[str, Any] | None = None,
    ) -> None:
        """Publish pre-encoded bytes to *queue_name* (used for dead-lettering)."""
        message = aio_pika.Message(
            body=body,
            content_type=self._serializer.content_type,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            message_id=message_id,
            correlation_id=correlation_id,
            headers=headers or {},
        )
        async with self._lock:
            try:
                channel = await self._ensure_channel()
                await self._declare(channel, queue_name)
                await channel.default_exchange.publish(message, routing_key=queue_name)
            except BrokerConnectionError as e:
                raise PublishError(queue_name, str(e)) from e
            except (AMQPError, ConnectionError, OSError, RuntimeError) as e:
                # Drop the channel; the next publish opens a fresh one.
                self._channel = None
                raise PublishError(queue_name, str(e)) from e

    async def close(self) -> None:
        """Close the producer's channel."""
        async with self._lock:
            if self._channel is not None and not self._channel.is_closed:
                await self._channel.close()
            self._channel = None
            self._declared.clear()

    async def health_check(self) -> bool:
        """Return True if the connection is healthy."""
        return await self._connection.health_check()
