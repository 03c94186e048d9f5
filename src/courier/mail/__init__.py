"""Outbound email: enqueue on the request path, send from the worker."""

from __future__ import annotations

from .handler import MailHandler
from .message import EmailTask, SendMailRequest
from .sender import IEmailSender, SmtpEmailSender
from .service import MailService

__all__ = [
    "EmailTask",
    "IEmailSender",
    "MailHandler",
    "MailService",
    "SendMailRequest",
    "SmtpEmailSender",
]
