"""Dispatcher — one supervised consumer loop per registered queue."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import TYPE_CHECKING

from aio_pika.exceptions import ChannelPreconditionFailed
from aiormq.exceptions import ChannelAccessRefused

from .attempts import AttemptTracker
from .correlation import correlation_scope
from .delivery import Delivery, DeliveryOutcome, broker_delivery_count, message_key
from .exceptions import MalformedTaskError, PublishError, QueueDeclarationError
from .ports import IBackgroundWorker
from .retry import RetryPolicy
from .structured_logging import log_delivery

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage

    from .connection import BrokerConnection
    from .dead_letter import DeadLetterHandler
    from .registry import HandlerRegistry

logger = logging.getLogger("courier.dispatcher")


class Dispatcher(IBackgroundWorker):
    """Drains every registered queue and enforces the acknowledgment contract.

    For each queue in the registry, :meth:`start` spawns a task that opens
    a dedicated channel, declares the queue (durable), sets the channel
    prefetch limit and consumes with manual acknowledgment. Deliveries on
    one queue are processed strictly one after another; queues never wait
    on each other.

    Per delivery:

    1. resolve a fresh handler from the registry and call ``process``;
    2. on success, ack that single delivery;
    3. on failure, nack with ``requeue=True`` after the retry backoff, or
       once the retry policy is exhausted hand the delivery to the
       dead-letter handler and ack it.

    A consumer whose channel is torn down is re-established after
    ``restart_delay``. A queue that cannot be declared (conflicting
    arguments or access refused) stops only its own consumer.

    :meth:`stop` cancels every loop. Unacknowledged in-flight deliveries
    return to the queue when their channel closes.
    """

    def __init__(
        self,
        connection: BrokerConnection,
        registry: HandlerRegistry,
        *,
        prefetch_count: int = 1,
        retry_policy: RetryPolicy | None = None,
        dead_letter: DeadLetterHandler | None = None,
        restart_delay: float = 5.0,
        attempts: AttemptTracker | None = None,
    ) -> None:
        """Configure the dispatcher.

        Args:
            connection: Shared broker connection; channels are opened per loop.
            registry: Queue name -> handler factory bindings.
            prefetch_count: Max unacknowledged deliveries per consumer.
            retry_policy: Requeue/backoff policy; default ``RetryPolicy()``.
            dead_letter: Receives deliveries whose retries are exhausted.
                Without it, exhausted deliveries keep being requeued.
            restart_delay: Seconds before re-establishing a failed consumer.
            attempts: Failure counter shared across redeliveries.
        """
        if prefetch_count < 1:
            raise ValueError("prefetch_count must be >= 1")
        self._connection = connection
        self._registry = registry
        self._prefetch_count = prefetch_count
        self._retry_policy = retry_policy or RetryPolicy()
        self._dead_letter = dead_letter
        self._restart_delay = restart_delay
        self._attempts = attempts if attempts is not None else AttemptTracker()
        self._running = False
        self._tasks: dict[str, asyncio.Task[None]] = {}

    # ── Lifecycle ────────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        queue_names = self._registry.queue_names()
        if not queue_names:
            logger.warning("Dispatcher started with no registered handlers")
        self._running = True
        for queue_name in queue_names:
            self._tasks[queue_name] = asyncio.create_task(
                self._consume_loop(queue_name),
                name=f"courier-consumer:{queue_name}",
            )
        logger.info("Dispatcher running with %d consumer(s)", len(self._tasks))

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        logger.info("Dispatcher stopped")

    @property
    def running(self) -> bool:
        return self._running

    def is_consuming(self, queue_name: str) -> bool:
        """Return True while the consumer loop for *queue_name* is alive."""
        task = self._tasks.get(queue_name)
        return task is not None and not task.done()

    async def health_check(self) -> bool:
        """Return True if the connection is open and every loop is alive."""
        if not self._running or not await self._connection.health_check():
            return False
        return all(not task.done() for task in self._tasks.values())

    # ── Consumer loops ───────────────────────────────────────────

    async def _consume_loop(self, queue_name: str) -> None:
        while self._running:
            try:
                await self._consume(queue_name)
            except QueueDeclarationError:
                logger.exception(
                    "Consumer for queue %s stopped permanently", queue_name
                )
                return
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Consumer for queue %s failed; restarting in %.1fs",
                    queue_name,
                    self._restart_delay,
                )
            else:
                if self._running:
                    logger.warning(
                        "Channel for queue %s closed; re-establishing consumer",
                        queue_name,
                    )
            if self._running:
                await asyncio.sleep(self._restart_delay)

    async def _consume(self, queue_name: str) -> None:
        channel = await self._connection.create_channel(publisher_confirms=False)
        async with channel:
            await channel.set_qos(prefetch_count=self._prefetch_count)
            try:
                queue = await channel.declare_queue(
                    queue_name, durable=True, exclusive=False, auto_delete=False
                )
            except (ChannelPreconditionFailed, ChannelAccessRefused) as e:
                raise QueueDeclarationError(queue_name, str(e)) from e
            logger.info(
                "Started consuming from queue: %s (prefetch=%d)",
                queue_name,
                self._prefetch_count,
            )
            async with queue.iterator() as messages:
                async for message in messages:
                    await self.handle_delivery(queue_name, message)

    # ── Delivery protocol ────────────────────────────────────────

    async def handle_delivery(
        self, queue_name: str, message: AbstractIncomingMessage
    ) -> DeliveryOutcome:
        """Run one delivery through its handler and ack/nack it."""
        key = message_key(message)
        attempt = self._attempts.attempt_for(key, broker_delivery_count(message))
        delivery = Delivery.from_message(queue_name, message, attempt)
        started = time.monotonic()

        error: Exception | None = None
        try:
            handler = self._registry.resolve(queue_name)
            with correlation_scope(delivery.correlation_id):
                await handler.process(delivery)
        except Exception as e:  # noqa: BLE001
            error = e

        if error is None:
            await message.ack()
            self._attempts.forget(key)
            outcome = DeliveryOutcome.ACKED
            logger.info("Message processed successfully from queue: %s", queue_name)
        else:
            outcome = await self._fail(delivery, message, error)

        log_delivery(
            queue=queue_name,
            task_id=delivery.message_id,
            outcome=outcome.value,
            attempt=attempt,
            started=started,
            correlation_id=delivery.correlation_id,
        )
        return outcome

    async def _fail(
        self,
        delivery: Delivery,
        message: AbstractIncomingMessage,
        error: Exception,
    ) -> DeliveryOutcome:
        kind = "Malformed task" if isinstance(error, MalformedTaskError) else "Error"
        logger.error(
            "%s processing message %s from queue %s (attempt %d)",
            kind,
            delivery.message_id,
            delivery.queue_name,
            delivery.attempt,
            exc_info=error,
        )
        self._attempts.record_failure(delivery.message_id, delivery.attempt)

        if self._dead_letter is not None and not self._retry_policy.should_retry(
            delivery.attempt
        ):
            try:
                await self._dead_letter.route(
                    delivery, reason=f"{type(error).__name__}: {error}", exception=error
                )
            except PublishError:
                logger.exception(
                    "Dead-lettering message %s failed; requeueing",
                    delivery.message_id,
                )
            else:
                await message.ack()
                self._attempts.forget(delivery.message_id)
                return DeliveryOutcome.DEAD_LETTERED

        await self._retry_policy.wait_before_retry(delivery.attempt)
        await message.nack(requeue=True)
        logger.warning(
            "Message %s requeued on queue %s", delivery.message_id, delivery.queue_name
        )
        return DeliveryOutcome.REQUEUED
