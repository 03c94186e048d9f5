"""DeadLetterHandler — park deliveries that exhausted their retries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from .delivery import Delivery
    from .producer import TaskProducer

logger = logging.getLogger("courier.dead_letter")


class DeadLetterHandler:
    """Routes deliveries that fail after max retries to a dead-letter queue.

    The original body is republished untouched to ``<queue><suffix>`` with
    headers describing the failure, so it can be inspected or replayed.
    An optional async callback runs afterwards (alerting, metrics, ...).
    """

    def __init__(
        self,
        producer: TaskProducer,
        *,
        suffix: str = ".dead-letter",
        on_dead_letter: (
            Callable[[Delivery, str, BaseException | None], Coroutine[Any, Any, None]]
            | None
        ) = None,
    ) -> None:
        """Configure dead-letter handling.

        Args:
            producer: Publishes to the dead-letter queue.
            suffix: Appended to the source queue name.
            on_dead_letter: Async callable (delivery, reason, exception) -> None.
        """
        self._producer = producer
        self._suffix = suffix
        self._on_dead_letter = on_dead_letter

    def queue_for(self, queue_name: str) -> str:
        return f"{queue_name}{self._suffix}"

    async def route(
        self,
        delivery: Delivery,
        reason: str,
        exception: BaseException | None = None,
    ) -> str:
        """Publish the delivery to its dead-letter queue and return that queue.

        Raises ``PublishError`` if the dead-letter publish fails; the caller
        must then keep the message on the source queue.
        """
        target = self.queue_for(delivery.queue_name)
        await self._producer.publish_raw(
            target,
            delivery.body,
            message_id=delivery.message_id,
            correlation_id=delivery.correlation_id,
            headers={
                "x-original-queue": delivery.queue_name,
                "x-death-reason": reason[:1024],
                "x-attempts": delivery.attempt,
            },
        )
        logger.error(
            "Task %s from %s dead-lettered to %s after %d attempt(s): %s",
            delivery.message_id,
            delivery.queue_name,
            target,
            delivery.attempt,
            reason,
        )
        if self._on_dead_letter is not None:
            # The message is already parked; a failing callback must not
            # send it back to the source queue.
            try:
                await self._on_dead_letter(delivery, reason, exception)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "on_dead_letter callback failed for task %s", delivery.message_id
                )
        return target
