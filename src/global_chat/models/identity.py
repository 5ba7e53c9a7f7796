"""
Identity — the stable handle a session's messages are attributed to.
"""

from typing import Optional
from pydantic import BaseModel

SHORT_ID_LENGTH = 8


class Identity(BaseModel):
    id: str
    is_anonymous: bool = True
    id_token: Optional[str] = None       # Bearer token issued by the provider
    refresh_token: Optional[str] = None

    model_config = {"frozen": True}

    def __repr__(self) -> str:
        return f"Identity(id={self.id!r}, is_anonymous={self.is_anonymous!r})"


def short_id(uid: Optional[str]) -> str:
    """Display label for an author id."""
    return uid[:SHORT_ID_LENGTH] if uid else "unknown"
