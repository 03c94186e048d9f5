"""Root logging setup for the worker process."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Install a stream handler on the root logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # aiormq/aio_pika are chatty at INFO during reconnects.
    logging.getLogger("aiormq").setLevel(max(level, logging.WARNING))
    logging.getLogger("aio_pika").setLevel(max(level, logging.WARNING))
