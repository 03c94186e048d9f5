"""SMTP email sending."""

from __future__ import annotations

import asyncio
import email.message
import email.policy
import email.utils
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import aiosmtplib

from ..exceptions import HandlerExecutionError

if TYPE_CHECKING:
    from ..config import MailSettings
    from .message import EmailTask

logger = logging.getLogger(__name__)


@runtime_checkable
class IEmailSender(Protocol):
    """Port for delivering an email task to its recipients."""

    async def send(self, task: EmailTask) -> None:
        """Send the email. Raises ``HandlerExecutionError`` on failure."""
        ...


def build_message(task: EmailTask) -> email.message.EmailMessage:
    message = email.message.EmailMessage(policy=email.policy.default)
    message["To"] = ", ".join(task.to)
    message["From"] = email.utils.formataddr((task.from_name, task.from_email))
    message["Subject"] = task.subject
    if task.is_html:
        message.set_content(task.body, subtype="html", charset="utf-8")
    else:
        message.set_content(task.body, charset="utf-8")
    return message


class SmtpEmailSender(IEmailSender):
    """
    Async SMTP email sender using aiosmtplib.

    One SMTP session per send; the session is closed on every exit path.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: MailSettings) -> SmtpEmailSender:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.use_tls,
            timeout=settings.timeout,
        )

    async def send(self, task: EmailTask) -> None:
        message = build_message(task)
        try:
            async with aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                timeout=self.timeout,
                start_tls=self.use_tls,
            ) as smtp:
                if self.username and self.password:
                    await smtp.login(self.username, self.password)
                await smtp.send_message(message)
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.error("Failed to send email to %s: %s", ", ".join(task.to), e)
            raise HandlerExecutionError(
                f"SMTP delivery via {self.host}:{self.port} failed: {e}"
            ) from e
