"""AttemptTracker — count failed deliveries per message across redeliveries."""

from __future__ import annotations

from collections import OrderedDict


class AttemptTracker:
    """In-process failure counter keyed by message id.

    Classic queues do not count redeliveries, so the consumer keeps its own
    tally. The count lives only as long as the process; after a restart a
    message starts from its broker ``x-delivery-count`` (if any) again.
    Entries are dropped once a message is acked or dead-lettered.

    A message that fails here and is then consumed elsewhere, purged or
    expired never comes back to clear its entry. The map is therefore
    capped at ``max_entries``; the least recently failed ids are evicted
    first, which at worst restarts their count.
    """

    def __init__(self, max_entries: int = 10_000) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max_entries = max_entries
        self._failures: OrderedDict[str, int] = OrderedDict()

    def attempt_for(self, message_id: str, broker_count: int = 0) -> int:
        """Return the 1-based attempt number of the current delivery."""
        return max(self._failures.get(message_id, 0), broker_count) + 1

    def record_failure(self, message_id: str, attempt: int) -> None:
        self._failures[message_id] = max(self._failures.get(message_id, 0), attempt)
        self._failures.move_to_end(message_id)
        while len(self._failures) > self._max_entries:
            self._failures.popitem(last=False)

    def forget(self, message_id: str) -> None:
        self._failures.pop(message_id, None)

    def __len__(self) -> int:
        return len(self._failures)

    def clear(self) -> None:
        """Clear all counters (for testing)."""
        self._failures.clear()
