"""
Socket.IO realtime document store.

Connection: {realtime_url}/socket.io/ with auth={project_id}.
Waits for the server's `ready` event before resolving connect(). A dropped socket
is reported to every live subscription as a `subscription_disconnected`
error, and each `ready` after a reconnect re-sends their subscribe frames.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketIOConnectionError

from global_chat.backend import ErrorCallback, Release, SnapshotCallback
from global_chat.errors import ConnectionError, SubscriptionError, WriteError
from global_chat.models.envelope import MessageEnvelope
from global_chat.models.events import LIFECYCLE_EVENTS, C2SEvent, S2CEvent
from global_chat.models.message import DocumentSnapshot
from global_chat.transport.envelope import build_envelope, parse_envelope

logger = logging.getLogger(__name__)

SOCKETIO_PATH = "/socket.io/"

EnvelopeHandler = Callable[[str, MessageEnvelope], None]


def parse_documents(data: Any) -> list[DocumentSnapshot]:
    """Parse ``data.documents`` of a snapshot frame. Entries without an id are dropped."""
    raw_docs = data.get("documents") if isinstance(data, dict) else None
    documents = []
    for raw in raw_docs or []:
        if isinstance(raw, dict) and raw.get("id"):
            documents.append(DocumentSnapshot(id=str(raw["id"]), data=raw.get("data") or {}))
        else:
            logger.warning(f"Dropping snapshot entry without id: {raw!r}")
    return documents


class SocketIODocumentStore:
    def __init__(
        self,
        base_url: str,
        project_id: str,
        device_id: Optional[str] = None,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
        write_timeout: float = 10.0,
    ):
        self._base_url = base_url
        self._project_id = project_id
        self._device_id = device_id or str(uuid.uuid4())
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._write_timeout = write_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False
        self._handlers: list[EnvelopeHandler] = []
        self._subscriptions: dict[str, tuple[str, ErrorCallback]] = {}

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    @property
    def device_id(self) -> str:
        return self._device_id

    def add_event_handler(self, handler: EnvelopeHandler) -> Callable[[], None]:
        """Add an envelope handler. Returns a cleanup function."""
        self._handlers.append(handler)

        def remove() -> None:
            try:
                self._handlers.remove(handler)
            except ValueError:
                pass
        return remove

    async def connect(self) -> None:
        """Connect to the realtime backend and wait for `ready`."""
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on(S2CEvent.READY)
        async def on_ready(*_args: Any) -> None:
            self._on_ready()
            ready_event.set()

        @self._sio.on("*")
        async def on_any(event: str, data: Any) -> None:
            self._dispatch(event, data)

        @self._sio.event
        async def disconnect(reason: str = "") -> None:
            self._on_disconnect(reason)

        try:
            await self._sio.connect(
                self._base_url,
                auth={"project_id": self._project_id},
                transports=self._transports,
                socketio_path=SOCKETIO_PATH,
            )
        except SocketIOConnectionError as e:
            raise ConnectionError(f"Realtime connect failed: {e}")

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise ConnectionError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")

    def _dispatch(self, event: str, data: Any) -> None:
        if event in LIFECYCLE_EVENTS or not self._handlers:
            return
        envelope = parse_envelope(data)
        if envelope is None:
            return
        for handler in list(self._handlers):
            handler(event, envelope)

    def _on_ready(self) -> None:
        self._connected = True
        if not self._subscriptions:
            return
        # The server forgets subscriptions when the socket drops
        logger.info(f"Resubscribing {len(self._subscriptions)} subscription(s) after reconnect")
        for subscription_id, (collection_path, _on_error) in list(self._subscriptions.items()):
            self.emit(C2SEvent.COLLECTION_SUBSCRIBE, None, collection_path, subscription_id)

    def _on_disconnect(self, reason: str = "") -> None:
        self._connected = False
        if not self._subscriptions:
            return
        logger.warning(f"Realtime connection lost ({reason or 'unknown reason'}), notifying subscribers")
        for subscription_id, (collection_path, on_error) in list(self._subscriptions.items()):
            on_error(SubscriptionError(
                f"Connection lost while subscribed to {collection_path}",
                code="subscription_disconnected",
                details={"subscription_id": subscription_id, "reason": reason},
            ))

    def emit(
        self,
        event_type: str,
        data: Any,
        collection_path: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> None:
        """Emit an enveloped event without waiting. Failures are logged."""
        if not self.connected:
            raise ConnectionError("Socket.IO not connected")
        envelope = build_envelope(
            event_type, data,
            device_id=self._device_id,
            collection_path=collection_path,
            subscription_id=subscription_id,
        )

        async def _do_emit() -> None:
            try:
                await self._sio.emit(event_type, envelope)  # type: ignore[union-attr]
            except Exception as e:
                logger.error(f"Emit failed for {event_type}: {e}")

        asyncio.get_running_loop().create_task(_do_emit())

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Release:
        if not self.connected:
            raise SubscriptionError("Socket.IO not connected", code="subscription_unavailable")
        subscription_id = str(uuid.uuid4())

        def handler(event: str, envelope: MessageEnvelope) -> None:
            if envelope.payload.subscription_id != subscription_id:
                return
            if event == S2CEvent.COLLECTION_SNAPSHOT:
                on_snapshot(parse_documents(envelope.payload.data))
            elif event == S2CEvent.COLLECTION_ERROR:
                data = envelope.payload.data if isinstance(envelope.payload.data, dict) else {}
                on_error(SubscriptionError(
                    str(data.get("message", "Snapshot stream error")),
                    details={"subscription_id": subscription_id},
                ))

        remove_handler = self.add_event_handler(handler)
        self._subscriptions[subscription_id] = (collection_path, on_error)
        self.emit(C2SEvent.COLLECTION_SUBSCRIBE, None, collection_path, subscription_id)
        released = False

        def unsubscribe() -> None:
            nonlocal released
            if released:
                return
            released = True
            self._subscriptions.pop(subscription_id, None)
            remove_handler()
            if self.connected:
                self.emit(C2SEvent.COLLECTION_UNSUBSCRIBE, None, collection_path, subscription_id)

        return unsubscribe

    async def add_document(self, collection_path: str, data: dict[str, Any]) -> str:
        """Add a document and wait for the server's ack carrying its id."""
        if not self.connected:
            raise WriteError("Socket.IO not connected")
        request_id = str(uuid.uuid4())
        envelope = build_envelope(
            C2SEvent.COLLECTION_ADD, data,
            device_id=self._device_id,
            collection_path=collection_path,
            request_id=request_id,
        )

        done = asyncio.Event()
        result: dict[str, Any] = {}

        def ack_handler(event: str, reply: MessageEnvelope) -> None:
            if event == S2CEvent.COLLECTION_ADDED and reply.metadata.request_id == request_id:
                if isinstance(reply.payload.data, dict):
                    result.update(reply.payload.data)
                done.set()

        remove_handler = self.add_event_handler(ack_handler)
        try:
            await self._sio.emit(C2SEvent.COLLECTION_ADD, envelope)  # type: ignore[union-attr]
            await asyncio.wait_for(done.wait(), timeout=self._write_timeout)
        except asyncio.TimeoutError:
            raise WriteError(f"Timeout waiting for {C2SEvent.COLLECTION_ADD} ack")
        finally:
            remove_handler()

        if result.get("error") or not result.get("id"):
            raise WriteError(f"Write rejected: {result.get('error', 'no document id')}")
        return str(result["id"])

    async def close(self) -> None:
        self._connected = False
        self._handlers.clear()
        self._subscriptions.clear()
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
