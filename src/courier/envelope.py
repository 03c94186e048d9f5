"""TaskEnvelope — immutable wrapper for task messages on the wire."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class TaskEnvelope(BaseModel):
    """Immutable wrapper for a task payload.

    The payload is opaque to the dispatch core; only the handler bound to
    ``queue_name`` interprets it.
    """

    model_config = ConfigDict(frozen=True)

    task_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    queue_name: str = Field(..., min_length=1, description="Target queue / routing key")
    payload: dict[str, object] = Field(default_factory=dict)
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
