"""BrokerConnection — one shared robust AMQP connection, channels on demand."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import aio_pika
from aio_pika.exceptions import AMQPError

from .exceptions import BrokerConnectionError

if TYPE_CHECKING:
    from types import TracebackType

    from aio_pika.abc import AbstractChannel, AbstractRobustConnection

    from .config import BrokerSettings

logger = logging.getLogger("courier.connection")


class BrokerConnection:
    """Owns the single long-lived connection to the broker.

    The connection is created lazily on first use and recreated if it was
    closed. ``connect_robust`` gives automatic reconnection with a bounded
    ``reconnect_interval``. An ``asyncio.Lock`` guards creation so racing
    callers share one connection.

    Create one instance at startup, pass it to the producer and the
    dispatcher, and call :meth:`close` at shutdown (or use it as an async
    context manager).
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5672,
        username: str = "guest",
        password: str = "guest",
        virtual_host: str = "/",
        *,
        reconnect_interval: float = 10.0,
        timeout: float | None = None,
        **connect_kwargs: Any,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._virtual_host = virtual_host
        self._reconnect_interval = reconnect_interval
        self._timeout = timeout
        self._connect_kwargs = connect_kwargs
        self._connection: AbstractRobustConnection | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: BrokerSettings) -> BrokerConnection:
        return cls(
            host=settings.host,
            port=settings.port,
            username=settings.username,
            password=settings.password,
            virtual_host=settings.virtual_host,
            reconnect_interval=settings.reconnect_interval,
            timeout=settings.connect_timeout,
        )

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def get_connection(self) -> AbstractRobustConnection:
        """Return the live connection, establishing it if absent or closed."""
        if self._connection is not None and not self._connection.is_closed:
            return self._connection
        async with self._lock:
            # Another caller may have connected while we waited for the lock.
            if self._connection is not None and not self._connection.is_closed:
                return self._connection
            logger.info(
                "Connecting to broker at %s:%s vhost=%s",
                self._host,
                self._port,
                self._virtual_host,
            )
            try:
                self._connection = await aio_pika.connect_robust(
                    host=self._host,
                    port=self._port,
                    login=self._username,
                    password=self._password,
                    virtualhost=self._virtual_host,
                    timeout=self._timeout,
                    reconnect_interval=self._reconnect_interval,
                    **self._connect_kwargs,
                )
            except (AMQPError, ConnectionError, OSError, asyncio.TimeoutError) as e:
                raise BrokerConnectionError(
                    f"Cannot connect to broker at {self._host}:{self._port}: {e}"
                ) from e
            logger.info("Broker connection established")
            return self._connection

    async def create_channel(
        self, *, publisher_confirms: bool = True
    ) -> AbstractChannel:
        """Open and return a new channel on the current connection.

        The caller owns the channel and must close it.
        """
        connection = await self.get_connection()
        try:
            return await connection.channel(publisher_confirms=publisher_confirms)
        except (AMQPError, ConnectionError, OSError) as e:
            raise BrokerConnectionError(f"Cannot open channel: {e}") from e

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        async with self._lock:
            if self._connection is None:
                return
            connection, self._connection = self._connection, None
            if not connection.is_closed:
                await connection.close()
            logger.info("Broker connection closed")

    async def health_check(self) -> bool:
        """Return True if the connection is open."""
        return self.is_open

    async def __aenter__(self) -> BrokerConnection:
        await self.get_connection()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
