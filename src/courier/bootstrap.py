"""Wiring of handlers and the dispatcher from settings."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .dead_letter import DeadLetterHandler
from .dispatcher import Dispatcher
from .mail import MailHandler, SmtpEmailSender
from .registry import HandlerRegistry
from .retry import RetryPolicy

if TYPE_CHECKING:
    from .config import Settings
    from .connection import BrokerConnection
    from .producer import TaskProducer


def build_registry(settings: Settings) -> HandlerRegistry:
    """Register every handler the worker serves.

    Factories build a new handler (and sender) per delivery.
    """
    registry = HandlerRegistry()
    mail = settings.mail
    registry.register(
        mail.queue_name,
        lambda: MailHandler(SmtpEmailSender.from_settings(mail)),
    )
    return registry


def build_dispatcher(
    settings: Settings,
    connection: BrokerConnection,
    registry: HandlerRegistry,
    producer: TaskProducer,
) -> Dispatcher:
    dispatch = settings.dispatch
    return Dispatcher(
        connection,
        registry,
        prefetch_count=dispatch.prefetch_count,
        retry_policy=RetryPolicy(
            max_attempts=dispatch.max_attempts,
            base_delay=min(dispatch.retry_base_delay, dispatch.retry_max_delay),
            max_delay=dispatch.retry_max_delay,
        ),
        dead_letter=DeadLetterHandler(producer, suffix=dispatch.dead_letter_suffix),
        restart_delay=dispatch.restart_delay,
    )
