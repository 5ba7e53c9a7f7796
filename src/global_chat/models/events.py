"""
Socket.IO event names for the realtime document store.
"""


class C2SEvent:
    """Client to server."""
    COLLECTION_SUBSCRIBE = "collection:subscribe"
    COLLECTION_UNSUBSCRIBE = "collection:unsubscribe"
    COLLECTION_ADD = "collection:add"


class S2CEvent:
    """Server to client."""
    READY = "ready"
    COLLECTION_SNAPSHOT = "collection:snapshot"
    COLLECTION_ERROR = "collection:error"
    COLLECTION_ADDED = "collection:added"


# Socket.IO lifecycle events that never carry an envelope
LIFECYCLE_EVENTS = {"connect", "disconnect", "connect_error", S2CEvent.READY}
