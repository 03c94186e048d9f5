"""Worker process: ``python -m courier``."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .bootstrap import build_dispatcher, build_registry
from .config import Settings, load_settings
from .connection import BrokerConnection
from .logging_config import configure_logging
from .producer import TaskProducer

logger = logging.getLogger("courier.worker")


async def run_worker(
    settings: Settings, stop_event: asyncio.Event | None = None
) -> None:
    """Run the dispatcher until *stop_event* is set (or SIGINT/SIGTERM)."""
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)

    registry = build_registry(settings)
    connection = BrokerConnection.from_settings(settings.broker)
    producer = TaskProducer(connection)
    dispatcher = build_dispatcher(settings, connection, registry, producer)

    logger.info("Worker starting for queues: %s", ", ".join(registry.queue_names()))
    try:
        await dispatcher.start()
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await dispatcher.stop()
        await producer.close()
        await connection.close()
        logger.info("Worker stopped")


def main() -> None:
    settings = load_settings()
    configure_logging(settings.dispatch.log_level)
    asyncio.run(run_worker(settings))


if __name__ == "__main__":
    main()
