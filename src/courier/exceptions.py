"""Exception hierarchy for courier."""

from __future__ import annotations


class CourierError(Exception):
    """Root exception for the courier task dispatch core."""


class InfrastructureError(CourierError):
    """Base class for all infrastructure-related errors."""


class MessagingError(InfrastructureError):
    """Base class for all broker-related errors."""


class BrokerConnectionError(MessagingError):
    """Raised when connectivity to the message broker fails."""


class PublishError(MessagingError):
    """Raised when a task cannot be handed to the broker.

    Surfaced synchronously to the enqueue caller.
    """

    def __init__(self, queue_name: str, reason: str) -> None:
        self.queue_name = queue_name
        super().__init__(f"Failed to publish to queue {queue_name!r}: {reason}")


class QueueDeclarationError(MessagingError):
    """Raised when a consumer queue cannot be declared (permanent failure)."""

    def __init__(self, queue_name: str, reason: str) -> None:
        self.queue_name = queue_name
        super().__init__(f"Cannot declare queue {queue_name!r}: {reason}")


class HandlerError(CourierError):
    """Base class for handler errors (registration, lookup, execution)."""


class HandlerRegistrationError(HandlerError):
    """Raised when a handler registration conflict is detected."""


class DuplicateQueueError(HandlerRegistrationError):
    """Raised when a second handler is registered for a bound queue name."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        super().__init__(f"A handler is already registered for queue {queue_name!r}")


class HandlerNotFoundError(HandlerError):
    """Raised when no handler is bound to a queue name."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        super().__init__(f"No handler registered for queue {queue_name!r}")


class MalformedTaskError(HandlerError):
    """Raised when a task body cannot be deserialized or validated."""


class HandlerExecutionError(HandlerError):
    """Raised when a handler fails while processing a well-formed task."""


class ValidationError(CourierError):
    """Raised when enqueue input fails validation.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))
