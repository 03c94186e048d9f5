"""RetryPolicy — bounded redelivery with exponential backoff and jitter."""

from __future__ import annotations

import asyncio
import random


class RetryPolicy:
    """Decides whether a failed delivery is requeued or dead-lettered.

    Attempts are 1-based: the first delivery is attempt 1. A failed attempt
    below ``max_attempts`` is requeued after ``delay_for_attempt``; the last
    allowed attempt goes to the dead-letter queue instead.

    Args:
        max_attempts: Deliveries allowed per message, the first included.
            ``None`` never gives up.
        base_delay: Seconds to wait before the first requeue; doubles per
            further attempt.
        max_delay: Ceiling on the wait, in seconds.
        jitter: Spread waits over 50%..150% of the computed delay so that
            failing consumers do not requeue in lockstep.
    """

    def __init__(
        self,
        *,
        max_attempts: int | None = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        jitter: bool = True,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError(f"max_attempts must be None or >= 1, got {max_attempts}")
        if min(base_delay, max_delay) < 0:
            raise ValueError("retry delays cannot be negative")
        if base_delay > max_delay:
            raise ValueError(
                f"base_delay ({base_delay}) exceeds max_delay ({max_delay})"
            )
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    @classmethod
    def unbounded(cls) -> RetryPolicy:
        """Requeue every failure immediately, with no attempt cap."""
        return cls(max_attempts=None, base_delay=0.0, max_delay=0.0, jitter=False)

    def should_retry(self, attempt: int) -> bool:
        """True while *attempt* leaves room for another delivery."""
        if attempt < 1:
            return False
        return self.max_attempts is None or attempt < self.max_attempts

    def delay_for_attempt(self, attempt: int) -> float:
        """Seconds to hold a delivery that failed on *attempt* before requeue."""
        if attempt < 1:
            return 0.0
        delay = min(self.base_delay * 2 ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)  # noqa: S311
        return float(delay)

    async def wait_before_retry(self, attempt: int) -> None:
        delay = self.delay_for_attempt(attempt)
        if delay > 0:
            await asyncio.sleep(delay)
