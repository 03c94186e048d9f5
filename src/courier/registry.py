"""Handler registry — queue name to handler factory, with conflict detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import DuplicateQueueError, HandlerNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .ports import HandlerFactory, ITaskHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Explicit, typed store of queue handlers.

    Populate it during bootstrapping, before the dispatcher starts. Each
    queue name binds exactly one factory, because only one consumer is
    bound per queue. Registering a second factory for a name raises
    ``DuplicateQueueError`` immediately.

    :meth:`resolve` calls the factory on every lookup, so each delivery gets
    its own handler instance and per-invocation dependencies.
    """

    def __init__(self) -> None:
        self._factories: dict[str, HandlerFactory] = {}

    # ── Registration ─────────────────────────────────────────────

    def register(self, queue_name: str, factory: HandlerFactory) -> None:
        if not queue_name:
            raise ValueError("queue_name must be a non-empty string")
        if queue_name in self._factories:
            raise DuplicateQueueError(queue_name)
        self._factories[queue_name] = factory
        logger.debug(
            "Registered handler %s -> %s",
            queue_name,
            getattr(factory, "__name__", type(factory).__name__),
        )

    # ── Lookup ───────────────────────────────────────────────────

    def resolve(self, queue_name: str) -> ITaskHandler:
        """Return a new handler instance for *queue_name*."""
        factory = self._factories.get(queue_name)
        if factory is None:
            raise HandlerNotFoundError(queue_name)
        return factory()

    def queue_names(self) -> list[str]:
        """Return registered queue names in registration order."""
        return list(self._factories)

    def __contains__(self, queue_name: object) -> bool:
        return queue_name in self._factories

    def __len__(self) -> int:
        return len(self._factories)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._factories))

    # ── Cleanup ──────────────────────────────────────────────────

    def clear(self) -> None:
        """Clear all registered handlers (testing utility)."""
        self._factories.clear()


__all__ = ["HandlerRegistry"]
