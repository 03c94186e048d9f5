"""Tests for registry and dispatcher wiring."""

from __future__ import annotations

from unittest.mock import MagicMock

from courier.bootstrap import build_dispatcher, build_registry
from courier.config import DispatchSettings, MailSettings, Settings
from courier.dispatcher import Dispatcher
from courier.mail import MailHandler


def _settings() -> Settings:
    return Settings(
        mail=MailSettings(queue_name="outbound", smtp_host="mx"),
        dispatch=DispatchSettings(
            prefetch_count=2,
            max_attempts=3,
            retry_base_delay=0.5,
            retry_max_delay=4.0,
            restart_delay=1.0,
            dead_letter_suffix=".dlq",
        ),
    )


def test_registry_binds_mail_queue_to_fresh_handlers() -> None:
    registry = build_registry(_settings())
    assert registry.queue_names() == ["outbound"]
    first = registry.resolve("outbound")
    second = registry.resolve("outbound")
    assert isinstance(first, MailHandler)
    assert first is not second


def test_dispatcher_uses_dispatch_settings() -> None:
    settings = _settings()
    producer = MagicMock()
    dispatcher = build_dispatcher(
        settings, MagicMock(), build_registry(settings), producer
    )
    assert isinstance(dispatcher, Dispatcher)
    assert dispatcher._prefetch_count == 2
    assert dispatcher._restart_delay == 1.0
    policy = dispatcher._retry_policy
    assert policy.max_attempts == 3
    assert policy.base_delay == 0.5
    assert policy.max_delay == 4.0
    assert dispatcher._dead_letter is not None
    assert dispatcher._dead_letter.queue_for("outbound") == "outbound.dlq"


def test_base_delay_is_clamped_to_max_delay() -> None:
    settings = Settings(
        dispatch=DispatchSettings(retry_base_delay=10.0, retry_max_delay=2.0)
    )
    dispatcher = build_dispatcher(
        settings, MagicMock(), build_registry(settings), MagicMock()
    )
    assert dispatcher._retry_policy.base_delay == 2.0
