"""Mail task payload and enqueue-request validation."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MalformedTaskError, ValidationError

_EMAIL_RE = re.compile(r"^[^@\s<>,;]+@[^@\s<>,;]+\.[^@\s<>,;]+$")

MAX_SUBJECT_LENGTH = 500
MAX_BODY_LENGTH = 50_000


def is_valid_email(value: str) -> bool:
    """Return True for a bare ``local@domain.tld`` address."""
    return bool(_EMAIL_RE.match(value))


class SendMailRequest(BaseModel):
    """Inbound request to queue an email."""

    to: list[str] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=MAX_SUBJECT_LENGTH)
    body: str = Field(..., min_length=1, max_length=MAX_BODY_LENGTH)
    is_html: bool = True

    @field_validator("to")
    @classmethod
    def _recipients_are_addresses(cls, value: list[str]) -> list[str]:
        bad = [address for address in value if not is_valid_email(address)]
        if bad:
            raise ValueError(
                "All recipients must have valid email addresses: " + ", ".join(bad)
            )
        return value

    @classmethod
    def parse(
        cls,
        to: str | list[str] | tuple[str, ...],
        subject: str,
        body: str,
        is_html: bool = True,
    ) -> SendMailRequest:
        """Validate input, raising courier's ``ValidationError`` on failure."""
        recipients = [to] if isinstance(to, str) else list(to)
        try:
            return cls(to=recipients, subject=subject, body=body, is_html=is_html)
        except PydanticValidationError as e:
            errors: dict[str, list[str]] = {}
            for err in e.errors():
                field = str(err["loc"][0]) if err["loc"] else "__root__"
                errors.setdefault(field, []).append(err["msg"])
            raise ValidationError(errors) from e


class EmailTask(BaseModel):
    """Payload of a task on the mail queue."""

    model_config = ConfigDict(frozen=True)

    to: list[str] = Field(..., min_length=1)
    subject: str
    body: str
    is_html: bool = True
    from_email: str
    from_name: str = ""
    queued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> EmailTask:
        """Build from a decoded envelope payload."""
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise MalformedTaskError(f"Invalid email task payload: {e}") from e
