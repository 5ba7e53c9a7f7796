"""
In-process document store.

Behaves like the realtime backend: documents are stamped with a monotonic
server timestamp on commit and every live subscriber receives the full
collection snapshot on the next loop turn after any write.
"""

import asyncio
import itertools
import logging
import time
import uuid
from typing import Any, Callable, Optional

from global_chat.backend import ErrorCallback, Release, SnapshotCallback
from global_chat.errors import WriteError
from global_chat.models.message import SERVER_TIMESTAMP, DocumentSnapshot

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class MemoryDocumentStore:
    def __init__(self, clock: Optional[Callable[[], int]] = None, stamp_delay: float = 0.0):
        """
        Args:
            clock: millisecond clock used for server timestamps.
            stamp_delay: when > 0, a write is first published unstamped and
                stamped ``stamp_delay`` seconds later.
        """
        self._clock = clock or _wall_clock_ms
        self._stamp_delay = stamp_delay
        self._last_ts = 0
        self._documents: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscribers: dict[str, dict[int, tuple[SnapshotCallback, ErrorCallback]]] = {}
        self._ids = itertools.count(1)
        self._closed = False

    @property
    def live_subscriptions(self) -> int:
        return sum(len(subs) for subs in self._subscribers.values())

    async def connect(self) -> None:
        self._closed = False

    def snapshot(self, collection_path: str) -> list[DocumentSnapshot]:
        docs = self._documents.get(collection_path, {})
        return [DocumentSnapshot(id=doc_id, data=dict(data)) for doc_id, data in docs.items()]

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Release:
        sub_id = next(self._ids)
        self._subscribers.setdefault(collection_path, {})[sub_id] = (on_snapshot, on_error)
        asyncio.get_running_loop().call_soon(self._deliver, collection_path, sub_id)

        def unsubscribe() -> None:
            self._subscribers.get(collection_path, {}).pop(sub_id, None)
        return unsubscribe

    async def add_document(self, collection_path: str, data: dict[str, Any]) -> str:
        if self._closed:
            raise WriteError("Store is closed")
        doc_id = uuid.uuid4().hex[:20]
        stored = dict(data)
        if stored.get("timestamp") == SERVER_TIMESTAMP:
            if self._stamp_delay > 0:
                stored["timestamp"] = None
                asyncio.get_running_loop().call_later(
                    self._stamp_delay, self._stamp, collection_path, doc_id,
                )
            else:
                stored["timestamp"] = self._next_timestamp()
        self._documents.setdefault(collection_path, {})[doc_id] = stored
        self._broadcast(collection_path)
        return doc_id

    def put(self, collection_path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Insert a document verbatim, as another client's committed write."""
        self._documents.setdefault(collection_path, {})[doc_id] = dict(data)
        self._broadcast(collection_path)

    def fail(self, collection_path: str, error: Exception) -> None:
        """Report a delivery error to every subscriber of ``collection_path``."""
        for _, on_error in list(self._subscribers.get(collection_path, {}).values()):
            asyncio.get_running_loop().call_soon(on_error, error)

    def _next_timestamp(self) -> int:
        self._last_ts = max(self._clock(), self._last_ts)
        return self._last_ts

    def _stamp(self, collection_path: str, doc_id: str) -> None:
        doc = self._documents.get(collection_path, {}).get(doc_id)
        if doc is not None and doc.get("timestamp") is None:
            doc["timestamp"] = self._next_timestamp()
            self._broadcast(collection_path)

    def _broadcast(self, collection_path: str) -> None:
        loop = asyncio.get_running_loop()
        for sub_id in list(self._subscribers.get(collection_path, {})):
            loop.call_soon(self._deliver, collection_path, sub_id)

    def _deliver(self, collection_path: str, sub_id: int) -> None:
        entry = self._subscribers.get(collection_path, {}).get(sub_id)
        if entry is None:
            return  # Unsubscribed before delivery
        on_snapshot, _ = entry
        on_snapshot(self.snapshot(collection_path))

    async def close(self) -> None:
        self._closed = True
        if self.live_subscriptions:
            logger.debug(f"Closing store with {self.live_subscriptions} live subscription(s)")
        self._subscribers.clear()
