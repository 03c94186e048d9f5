"""Shared fakes for the aio-pika objects courier talks to (no real broker)."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from courier.retry import RetryPolicy

pytest_plugins = ["pytest_asyncio"]


def make_message(
    body: bytes = b"{}",
    *,
    message_id: str | None = "msg-1",
    correlation_id: str | None = None,
    redelivered: bool = False,
    headers: dict[str, Any] | None = None,
    delivery_tag: int = 1,
) -> MagicMock:
    """Build a stand-in for ``aio_pika.abc.AbstractIncomingMessage``."""
    msg = MagicMock()
    msg.body = body
    msg.message_id = message_id
    msg.correlation_id = correlation_id
    msg.redelivered = redelivered
    msg.headers = headers or {}
    msg.delivery_tag = delivery_tag
    msg.ack = AsyncMock()
    msg.nack = AsyncMock()
    return msg


class FakeQueueIterator:
    """Async iterator over a FakeQueue; ``None`` in the feed ends iteration."""

    def __init__(self, feed: asyncio.Queue[Any]) -> None:
        self._feed = feed
        self.closed = False

    async def __aenter__(self) -> FakeQueueIterator:
        return self

    async def __aexit__(self, *exc: object) -> None:
        self.closed = True

    def __aiter__(self) -> FakeQueueIterator:
        return self

    async def __anext__(self) -> Any:
        item = await self._feed.get()
        if item is None:
            raise StopAsyncIteration
        return item


class FakeQueue:
    """Broker queue whose messages survive across consumer channels."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.feed: asyncio.Queue[Any] = asyncio.Queue()
        self.iterators: list[FakeQueueIterator] = []

    def put(self, message: Any) -> None:
        self.feed.put_nowait(message)

    def tear_down_channel(self) -> None:
        """Make the current consumer iterator end, as a closed channel does."""
        self.feed.put_nowait(None)

    def iterator(self, **kwargs: Any) -> FakeQueueIterator:
        it = FakeQueueIterator(self.feed)
        self.iterators.append(it)
        return it


def make_channel(declare: Any) -> MagicMock:
    channel = MagicMock()
    channel.is_closed = False
    channel.set_qos = AsyncMock()
    channel.declare_queue = AsyncMock(side_effect=declare)
    channel.close = AsyncMock()
    channel.__aenter__ = AsyncMock(return_value=channel)
    channel.__aexit__ = AsyncMock(return_value=False)
    exchange = MagicMock()
    exchange.publish = AsyncMock()
    channel.default_exchange = exchange
    return channel


def make_connection(queues: dict[str, FakeQueue] | None = None) -> MagicMock:
    """Build a stand-in for ``courier.connection.BrokerConnection``.

    Every ``create_channel`` call returns a new channel; they are recorded in
    ``conn.channels``.
    """
    queues = queues if queues is not None else {}
    conn = MagicMock()
    conn.health_check = AsyncMock(return_value=True)
    conn.channels = []

    def declare(name: str, **kwargs: Any) -> Any:
        return queues[name] if name in queues else MagicMock(name=name)

    async def create_channel(**kwargs: Any) -> MagicMock:
        channel = make_channel(declare)
        conn.channels.append(channel)
        return channel

    conn.create_channel = AsyncMock(side_effect=create_channel)
    return conn


async def wait_for(predicate: Any, timeout: float = 2.0) -> None:
    """Poll *predicate* until it is truthy, yielding to the event loop."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def no_backoff() -> RetryPolicy:
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=False)
