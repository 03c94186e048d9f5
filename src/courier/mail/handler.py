"""MailHandler — consumer side of the mail queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..ports import ITaskHandler
from ..serialization import TaskSerializer
from .message import EmailTask

if TYPE_CHECKING:
    from ..delivery import Delivery
    from .sender import IEmailSender

logger = logging.getLogger(__name__)


class MailHandler(ITaskHandler):
    """Decodes an email task and sends it synchronously within the delivery.

    Decoding failures raise ``MalformedTaskError``; transport failures
    propagate from the sender. Both leave the ack/nack decision to the
    dispatcher.
    """

    def __init__(
        self, sender: IEmailSender, *, serializer: TaskSerializer | None = None
    ) -> None:
        self._sender = sender
        self._serializer = serializer or TaskSerializer()

    async def process(self, delivery: Delivery) -> None:
        envelope = self._serializer.deserialize(delivery.body)
        task = EmailTask.from_payload(envelope.payload)
        await self._sender.send(task)
        logger.info("Email sent successfully to: %s", ", ".join(task.to))
