"""Structured per-delivery log entries."""

from __future__ import annotations

import json
import logging
import time

_log = logging.getLogger("courier.deliveries")


def log_delivery(
    *,
    queue: str,
    task_id: str,
    outcome: str,
    attempt: int,
    started: float,
    correlation_id: str | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Emit one JSON log entry describing how a delivery ended.

    *started* is a ``time.monotonic()`` reading taken when processing began.
    """
    log = logger or _log
    try:
        entry = {
            "queue": queue,
            "task_id": task_id,
            "outcome": outcome,
            "attempt": attempt,
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
            "correlation_id": correlation_id,
        }
        log.info(json.dumps(entry))
    except Exception:  # noqa: BLE001
        _log.debug("Failed to emit structured log entry", exc_info=True)
