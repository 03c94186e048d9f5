"""Handler port and background-worker lifecycle protocol."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .delivery import Delivery


@runtime_checkable
class ITaskHandler(Protocol):
    """
    Unit of domain logic bound to one queue, invoked once per delivery.

    ``process`` returning normally means the task is done and the delivery
    is acknowledged. Any exception means failure and the delivery is
    requeued (or dead-lettered once retries are exhausted). Cancellation
    arrives as ``asyncio.CancelledError`` and must not be swallowed.
    """

    async def process(self, delivery: Delivery) -> None:
        """Process one delivery."""
        ...


# Called once per delivery; must return a fresh handler instance.
HandlerFactory = Callable[[], ITaskHandler]


@runtime_checkable
class IBackgroundWorker(Protocol):
    """
    General lifecycle protocol for background workers.

    Used by: ``Dispatcher``.
    """

    async def start(self) -> None:
        """Start the background process."""
        ...

    async def stop(self) -> None:
        """Stop the background process gracefully."""
        ...


__all__ = ["HandlerFactory", "IBackgroundWorker", "ITaskHandler"]
