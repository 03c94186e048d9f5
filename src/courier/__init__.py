"""Durable task queues over AMQP: producer, dispatcher and handlers."""

from __future__ import annotations

from .attempts import AttemptTracker
from .config import BrokerSettings, DispatchSettings, MailSettings, Settings
from .connection import BrokerConnection
from .dead_letter import DeadLetterHandler
from .delivery import Delivery, DeliveryOutcome
from .dispatcher import Dispatcher
from .envelope import TaskEnvelope
from .exceptions import (
    BrokerConnectionError,
    CourierError,
    DuplicateQueueError,
    HandlerExecutionError,
    HandlerNotFoundError,
    MalformedTaskError,
    MessagingError,
    PublishError,
    QueueDeclarationError,
    ValidationError,
)
from .ports import HandlerFactory, IBackgroundWorker, ITaskHandler
from .producer import TaskProducer
from .registry import HandlerRegistry
from .retry import RetryPolicy
from .serialization import TaskSerializer

__all__ = [
    "AttemptTracker",
    "BrokerConnection",
    "BrokerConnectionError",
    "BrokerSettings",
    "CourierError",
    "DeadLetterHandler",
    "Delivery",
    "DeliveryOutcome",
    "DispatchSettings",
    "Dispatcher",
    "DuplicateQueueError",
    "HandlerExecutionError",
    "HandlerFactory",
    "HandlerNotFoundError",
    "HandlerRegistry",
    "IBackgroundWorker",
    "ITaskHandler",
    "MailSettings",
    "MalformedTaskError",
    "MessagingError",
    "PublishError",
    "QueueDeclarationError",
    "RetryPolicy",
    "Settings",
    "TaskEnvelope",
    "TaskProducer",
    "TaskSerializer",
    "ValidationError",
]
