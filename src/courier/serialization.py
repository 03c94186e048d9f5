"""TaskSerializer — JSON roundtrip for TaskEnvelope."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from .envelope import TaskEnvelope
from .exceptions import MalformedTaskError


def _json_serializer(obj: Any) -> Any:
    """Serialize datetime and other non-JSON types."""
    if hasattr(obj, "isoformat"):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class TaskSerializer:
    """Serialize/deserialize TaskEnvelope to/from UTF-8 JSON bytes.

    Field-named JSON keeps the consumer decoupled from the producer's process
    layout; any handler holding the payload contract can decode it.
    """

    content_type = "application/json"

    def serialize(self, envelope: TaskEnvelope) -> bytes:
        """Encode envelope to JSON bytes.

        Raises ``TypeError``/``ValueError`` for payloads that cannot be
        encoded; the producer turns those into ``PublishError``.
        """
        data = envelope.model_dump(mode="json")
        return json.dumps(data, default=_json_serializer).encode("utf-8")

    def deserialize(self, raw: bytes) -> TaskEnvelope:
        """Decode JSON bytes to TaskEnvelope."""
        try:
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, dict):
                raise TypeError(f"Expected a JSON object, got {type(data).__name__}")
            ts = data.get("enqueued_at")
            if isinstance(ts, str):
                data["enqueued_at"] = datetime.fromisoformat(ts.replace("Z", "+00:00"))
            return TaskEnvelope.model_validate(data)
        except (
            UnicodeDecodeError,
            json.JSONDecodeError,
            PydanticValidationError,
            TypeError,
            ValueError,
        ) as e:
            raise MalformedTaskError(f"Cannot decode task: {e}") from e
