"""Integration tests against a real RabbitMQ (require testcontainers)."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator

import pytest

pytest.importorskip("testcontainers")
pytest.importorskip("pika")  # required by testcontainers.rabbitmq

from testcontainers.rabbitmq import RabbitMqContainer

from courier.connection import BrokerConnection
from courier.dead_letter import DeadLetterHandler
from courier.delivery import Delivery
from courier.dispatcher import Dispatcher
from courier.producer import TaskProducer
from courier.registry import HandlerRegistry
from courier.retry import RetryPolicy
from courier.serialization import TaskSerializer


@pytest.fixture(scope="module")
def broker_params() -> Iterator[dict[str, object]]:
    with RabbitMqContainer("rabbitmq:3-management") as rabbit:
        params = rabbit.get_connection_params()
        creds = getattr(params, "credentials", None)
        yield {
            "host": params.host,
            "port": params.port,
            "username": getattr(creds, "username", "guest"),
            "password": getattr(creds, "password", "guest"),
        }


async def _wait(predicate: object, timeout: float = 10.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():  # type: ignore[operator]
        assert loop.time() < deadline, "condition not met in time"
        await asyncio.sleep(0.05)


@pytest.mark.asyncio
async def test_enqueued_task_is_processed_and_acked(
    broker_params: dict[str, object],
) -> None:
    connection = BrokerConnection(**broker_params)  # type: ignore[arg-type]
    producer = TaskProducer(connection)
    received: list[dict[str, object]] = []

    class Collect:
        async def process(self, delivery: Delivery) -> None:
            received.append(TaskSerializer().deserialize(delivery.body).payload)

    registry = HandlerRegistry()
    registry.register("it.tasks", Collect)
    dispatcher = Dispatcher(connection, registry)
    try:
        await dispatcher.start()
        await producer.enqueue("it.tasks", {"n": 1})
        await producer.enqueue("it.tasks", {"n": 2})
        await _wait(lambda: len(received) == 2)
        assert received == [{"n": 1}, {"n": 2}]
        assert await dispatcher.health_check() is True
    finally:
        await dispatcher.stop()
        await producer.close()
        await connection.close()


@pytest.mark.asyncio
async def test_failing_task_is_redelivered_then_dead_lettered(
    broker_params: dict[str, object],
) -> None:
    connection = BrokerConnection(**broker_params)  # type: ignore[arg-type]
    producer = TaskProducer(connection)
    attempts: list[int] = []

    class AlwaysFails:
        async def process(self, delivery: Delivery) -> None:
            attempts.append(delivery.attempt)
            raise RuntimeError("permanent failure")

    registry = HandlerRegistry()
    registry.register("it.poison", AlwaysFails)
    dispatcher = Dispatcher(
        connection,
        registry,
        retry_policy=RetryPolicy(max_attempts=3, base_delay=0, max_delay=0),
        dead_letter=DeadLetterHandler(producer),
    )
    try:
        await dispatcher.start()
        await producer.enqueue("it.poison", {"n": 1})
        await _wait(lambda: len(attempts) == 3)

        channel = await connection.create_channel()
        async with channel:
            queue = await channel.declare_queue(
                "it.poison.dead-letter", durable=True, passive=True
            )
            message = None
            for _ in range(50):
                message = await queue.get(fail=False)
                if message is not None:
                    break
                await asyncio.sleep(0.1)
            assert message is not None
            await message.ack()
        assert attempts == [1, 2, 3]
        assert message.headers["x-original-queue"] == "it.poison"
        assert message.headers["x-attempts"] == 3
        assert TaskSerializer().deserialize(message.body).payload == {"n": 1}
    finally:
        await dispatcher.stop()
        await producer.close()
        await connection.close()


@pytest.mark.asyncio
async def test_health_check(broker_params: dict[str, object]) -> None:
    connection = BrokerConnection(**broker_params)  # type: ignore[arg-type]
    try:
        await connection.get_connection()
        assert await connection.health_check() is True
    finally:
        await connection.close()
    assert await connection.health_check() is False
