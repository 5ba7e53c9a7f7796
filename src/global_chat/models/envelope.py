"""
Wire envelope wrapping every realtime store frame.
"""

from typing import Any, Optional
from pydantic import BaseModel


class ClientSource(BaseModel):
    role: str  # "client" | "server"
    device_id: Optional[str] = None
    plat: Optional[str] = None
    version: Optional[str] = None


class EnvelopeMetadata(BaseModel):
    event_id: str
    request_id: Optional[str] = None
    timestamp: str
    source: ClientSource


class CollectionPayload(BaseModel):
    collection_path: Optional[str] = None
    subscription_id: Optional[str] = None
    document_id: Optional[str] = None
    data: Optional[Any] = None


class MessageEnvelope(BaseModel):
    metadata: EnvelopeMetadata
    type: str
    payload: CollectionPayload
