"""
Message documents in the shared collection.

Documents are stored as ``{text, authorId, timestamp}``. ``timestamp`` is
stamped by the backend at commit time; until then it is absent (or still the
server-timestamp sentinel) and the message is treated as earliest possible.
"""

import math
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

# Write-side sentinel asking the backend to stamp its own commit time.
SERVER_TIMESTAMP: dict[str, str] = {".sv": "timestamp"}


class DocumentSnapshot(BaseModel):
    """One document as delivered inside a collection snapshot."""
    id: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Message(BaseModel):
    id: str
    author_id: str = Field(validation_alias=AliasChoices("author_id", "authorId", "userId"))
    text: str
    server_timestamp: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("server_timestamp", "serverTimestamp", "timestamp"),
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("text")
    @classmethod
    def _strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message text cannot be empty")
        return v

    @field_validator("server_timestamp", mode="before")
    @classmethod
    def _to_millis(cls, v: Any) -> Optional[int]:
        return timestamp_millis(v)

    @classmethod
    def from_document(cls, doc: DocumentSnapshot) -> "Message":
        return cls.model_validate({**doc.data, "id": doc.id})

    @property
    def is_pending(self) -> bool:
        """True until the backend has stamped the commit time."""
        return self.server_timestamp is None


def _whole(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Invalid timestamp component: {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Non-finite timestamp component: {value!r}")
    return int(value)


def timestamp_millis(value: Any) -> Optional[int]:
    """Normalise the timestamp shapes a backend may hand back to epoch millis.

    Accepts millis as int/float, ``{"seconds", "nanoseconds"}`` mappings (with
    or without a leading underscore), ISO-8601 strings and datetimes. ``None``
    and the unresolved server-timestamp sentinel map to ``None``. Anything
    else, including non-finite numbers, raises ``ValueError``.
    """
    if value is None or value == SERVER_TIMESTAMP:
        return None
    if isinstance(value, bool):
        raise ValueError("Invalid timestamp")
    if isinstance(value, (int, float)):
        return _whole(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        if seconds is not None:
            return _whole(seconds) * 1000 + _whole(nanos) // 1_000_000
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def new_message_document(author_id: str, text: str) -> dict[str, Any]:
    """Build the write payload for a new message."""
    return {
        "text": text,
        "authorId": author_id,
        "timestamp": dict(SERVER_TIMESTAMP),
    }
