"""
Session and feed state values.

Both are immutable snapshots; their owning controller replaces the value on
every transition and observers receive the new one.
"""

from typing import Optional
from pydantic import BaseModel, field_validator, model_validator

from global_chat.models.identity import Identity
from global_chat.models.message import Message


class Phase:
    CONNECTING = "connecting"
    AUTH_REQUIRED = "auth_required"
    ONLINE = "online"
    INIT_ERROR = "init_error"

    ALL = frozenset({CONNECTING, AUTH_REQUIRED, ONLINE, INIT_ERROR})


# Coarse, user-visible labels. Backend diagnostics never reach the UI.
STATUS_LABELS = {
    Phase.CONNECTING: "Connecting...",
    Phase.AUTH_REQUIRED: "Auth required",
    Phase.ONLINE: "Online",
    Phase.INIT_ERROR: "Init error",
}


class SessionState(BaseModel):
    phase: str = Phase.CONNECTING
    identity: Optional[Identity] = None

    model_config = {"frozen": True}

    @field_validator("phase")
    @classmethod
    def _known_phase(cls, v: str) -> str:
        if v not in Phase.ALL:
            raise ValueError(f"Unknown session phase: {v}")
        return v

    @model_validator(mode="after")
    def _online_has_identity(self) -> "SessionState":
        if self.phase == Phase.ONLINE and self.identity is None:
            raise ValueError("Online session requires an identity")
        return self

    @property
    def is_ready(self) -> bool:
        return self.phase == Phase.ONLINE and self.identity is not None

    @property
    def status(self) -> str:
        return STATUS_LABELS[self.phase]


class FeedStatus:
    IDLE = "idle"            # no live subscription
    SYNCING = "syncing"      # subscribed, waiting for the first snapshot
    LIVE = "live"
    DEGRADED = "degraded"    # delivery error reported, subscription kept open


class FeedState(BaseModel):
    messages: tuple[Message, ...] = ()
    status: str = FeedStatus.IDLE
    error: Optional[str] = None

    model_config = {"frozen": True}
