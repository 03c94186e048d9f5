"""MailService — producer side of the mail queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import PublishError
from .message import EmailTask, SendMailRequest

if TYPE_CHECKING:
    from ..config import MailSettings
    from ..envelope import TaskEnvelope
    from ..producer import TaskProducer

logger = logging.getLogger(__name__)


class MailService:
    """Queues outbound email for asynchronous delivery.

    Callers only learn whether the broker accepted the task; the eventual
    SMTP outcome is handled by the mail worker.
    """

    def __init__(
        self,
        producer: TaskProducer,
        *,
        from_email: str,
        from_name: str = "",
        queue_name: str = "mail",
    ) -> None:
        self._producer = producer
        self._from_email = from_email
        self._from_name = from_name
        self._queue_name = queue_name

    @classmethod
    def from_settings(
        cls, producer: TaskProducer, settings: MailSettings
    ) -> MailService:
        return cls(
            producer,
            from_email=settings.from_email,
            from_name=settings.from_name,
            queue_name=settings.queue_name,
        )

    @property
    def queue_name(self) -> str:
        return self._queue_name

    async def declare_queue(self) -> bool:
        """Declare the mail queue up front; failure is logged, not raised."""
        try:
            await self._producer.declare_queue(self._queue_name)
        except PublishError:
            logger.exception("Failed to initialize mail queue '%s'.", self._queue_name)
            return False
        logger.info("Mail queue '%s' initialized successfully.", self._queue_name)
        return True

    async def queue_email(
        self,
        to: str | list[str] | tuple[str, ...],
        subject: str,
        body: str,
        is_html: bool = True,
    ) -> TaskEnvelope:
        """Validate and enqueue an email to one or more recipients.

        Raises ``ValidationError`` for bad input and ``PublishError`` when
        the broker does not accept the task.
        """
        request = SendMailRequest.parse(to, subject, body, is_html)
        task = EmailTask(
            to=request.to,
            subject=request.subject,
            body=request.body,
            is_html=request.is_html,
            from_email=self._from_email,
            from_name=self._from_name,
        )
        try:
            envelope = await self._producer.enqueue(
                self._queue_name, task.model_dump(mode="json")
            )
        except PublishError:
            logger.exception("Failed to queue email. Subject: %s", task.subject)
            raise
        logger.info(
            "Email queued successfully. To: %s, Subject: %s",
            ", ".join(task.to),
            task.subject,
        )
        return envelope
