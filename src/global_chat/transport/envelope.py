"""
Envelope construction and parsing for the realtime store.
"""

import logging
import platform
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from global_chat.models.envelope import ClientSource, CollectionPayload, EnvelopeMetadata, MessageEnvelope

logger = logging.getLogger(__name__)


def build_envelope(
    event_type: str,
    data: Any,
    device_id: str,
    collection_path: Optional[str] = None,
    subscription_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build a C2S envelope as a dict ready for Socket.IO emit."""
    from global_chat import __version__
    envelope = MessageEnvelope(
        metadata=EnvelopeMetadata(
            event_id=str(uuid.uuid4()),
            request_id=request_id or str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            source=ClientSource(
                role="client",
                device_id=device_id,
                plat=f"python-{platform.python_version()}",
                version=__version__,
            ),
        ),
        type=event_type,
        payload=CollectionPayload(
            collection_path=collection_path,
            subscription_id=subscription_id,
            data=data,
        ),
    )
    return envelope.model_dump()


def parse_envelope(raw: Any) -> Optional[MessageEnvelope]:
    """Parse an S2C envelope. Returns None if invalid."""
    try:
        return MessageEnvelope.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Dropping malformed envelope: {e}")
        return None
