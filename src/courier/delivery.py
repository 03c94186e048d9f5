"""Delivery — the runtime view of one message pushed to a consumer."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aio_pika.abc import AbstractIncomingMessage


class DeliveryOutcome(Enum):
    """Terminal decision taken for a delivery."""

    ACKED = "acked"
    REQUEUED = "requeued"
    DEAD_LETTERED = "dead_lettered"


@dataclass(frozen=True)
class Delivery:
    """Immutable snapshot of an incoming message handed to a handler.

    Not persisted: the only durable trace of a delivery is the broker's own
    unacknowledged-message state.
    """

    queue_name: str
    delivery_tag: int | None
    body: bytes
    message_id: str
    attempt: int = 1
    redelivered: bool = False
    correlation_id: str | None = None

    @classmethod
    def from_message(
        cls, queue_name: str, message: AbstractIncomingMessage, attempt: int
    ) -> Delivery:
        return cls(
            queue_name=queue_name,
            delivery_tag=message.delivery_tag,
            body=message.body,
            message_id=message_key(message),
            attempt=attempt,
            redelivered=bool(message.redelivered),
            correlation_id=message.correlation_id,
        )


def message_key(message: AbstractIncomingMessage) -> str:
    """Stable identity for a message across redeliveries.

    The producer always sets ``message_id``. Foreign messages without one
    fall back to a digest of the body, so two distinct id-less messages
    with identical bodies share one failure count.
    """
    if message.message_id:
        return str(message.message_id)
    return hashlib.sha256(message.body).hexdigest()


def broker_delivery_count(message: AbstractIncomingMessage) -> int:
    """Return the broker's ``x-delivery-count`` header (quorum queues), or 0."""
    value = (message.headers or {}).get("x-delivery-count")
    try:
        return int(value) if value is not None else 0  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0
