"""
Feed synchronizer — one live subscription to the shared collection.

The subscription exists only while the session is online. Each identity
change releases the previous subscription before opening the next, so two
subscriptions are never live together.

Every snapshot is a full listing of the collection: the local message list
is rebuilt from it and re-sorted, never patched incrementally. Ordering
stability depends on that (see ``global_chat.ordering``).

Delivery errors mark the feed degraded and leave the subscription open;
the next snapshot restores it to live.
"""

import asyncio
import logging
from typing import AsyncGenerator, Callable, Optional

from pydantic import ValidationError

from global_chat.backend import DocumentStore, Release
from global_chat.models.identity import Identity
from global_chat.models.message import DocumentSnapshot, Message
from global_chat.models.state import FeedState, FeedStatus, SessionState
from global_chat.ordering import order_messages
from global_chat.session import SessionController

logger = logging.getLogger(__name__)

FeedListener = Callable[[FeedState], None]


class Subscription:
    """Scoped handle around a store subscription. ``release()`` is idempotent."""

    __slots__ = ("identity_id", "_release")

    def __init__(self, identity_id: str, release: Release):
        self.identity_id = identity_id
        self._release: Optional[Release] = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def release(self) -> None:
        release, self._release = self._release, None
        if release is None:
            return
        try:
            release()
        except Exception as e:
            logger.warning(f"Unsubscribe failed for {self.identity_id}: {e}")

    def __repr__(self) -> str:
        return f"Subscription(identity_id={self.identity_id!r}, active={self.active!r})"


def build_messages(documents: list[DocumentSnapshot]) -> tuple[Message, ...]:
    """Rebuild the ordered message list from a full snapshot, skipping malformed documents."""
    messages = []
    for doc in documents:
        try:
            messages.append(Message.from_document(doc))
        except ValidationError as e:
            logger.warning(f"Skipping malformed message {doc.id}: {e.error_count()} error(s)")
    return order_messages(messages)


class FeedSynchronizer:
    def __init__(self, store: DocumentStore, session: SessionController, collection_path: str):
        self._store = store
        self._session = session
        self._collection_path = collection_path
        self._state = FeedState()
        self._listeners: list[FeedListener] = []
        self._subscription: Optional[Subscription] = None
        self._remove_session_listener: Optional[Callable[[], None]] = None

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._state.messages

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    def add_listener(self, listener: FeedListener) -> Callable[[], None]:
        """Add a feed listener. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    def start(self) -> None:
        """Follow the session: subscribe while online, release otherwise."""
        if self._remove_session_listener is not None:
            return
        self._remove_session_listener = self._session.add_listener(self._on_session_state)
        self._on_session_state(self._session.state)

    def _on_session_state(self, state: SessionState) -> None:
        if not state.is_ready:
            self._release()
            return
        identity: Identity = state.identity  # type: ignore[assignment]
        if self._subscription is not None and self._subscription.identity_id == identity.id:
            return
        self._open(identity)

    def _open(self, identity: Identity) -> None:
        self._release()
        subscription: Optional[Subscription] = None

        def on_snapshot(documents: list[DocumentSnapshot]) -> None:
            if subscription is None or subscription is not self._subscription:
                return  # released, stale delivery
            self._set_state(FeedState(messages=build_messages(documents), status=FeedStatus.LIVE))

        def on_error(error: Exception) -> None:
            if subscription is None or subscription is not self._subscription:
                return
            logger.error(f"Snapshot error: {error}")
            self._set_state(FeedState(
                messages=self._state.messages, status=FeedStatus.DEGRADED, error="delivery_error",
            ))

        try:
            release = self._store.subscribe(self._collection_path, on_snapshot, on_error)
        except Exception as e:
            logger.error(f"Subscribe error: {e}")
            self._set_state(FeedState(
                messages=self._state.messages, status=FeedStatus.DEGRADED, error="subscribe_failed",
            ))
            return
        subscription = Subscription(identity.id, release)
        self._subscription = subscription
        logger.debug(f"Subscribed to {self._collection_path} as {identity.id}")
        self._set_state(FeedState(messages=self._state.messages, status=FeedStatus.SYNCING))

    def _release(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is None:
            return
        subscription.release()
        logger.debug(f"Released subscription for {subscription.identity_id}")
        self._set_state(FeedState(messages=self._state.messages, status=FeedStatus.IDLE))

    def _set_state(self, state: FeedState) -> None:
        if state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    async def updates(self) -> AsyncGenerator[FeedState, None]:
        """Yield the current feed, then every subsequent one, until closed by the consumer."""
        queue: asyncio.Queue[FeedState] = asyncio.Queue()
        remove = self.add_listener(queue.put_nowait)
        try:
            yield self._state
            while True:
                yield await queue.get()
        finally:
            remove()

    async def wait_for(
        self, predicate: Callable[[FeedState], bool], timeout: Optional[float] = None,
    ) -> FeedState:
        """Wait until ``predicate`` holds for the feed state."""
        if predicate(self._state):
            return self._state
        future: asyncio.Future[FeedState] = asyncio.get_running_loop().create_future()

        def check(state: FeedState) -> None:
            if not future.done() and predicate(state):
                future.set_result(state)

        remove = self.add_listener(check)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Timed out waiting for feed update after {timeout}s")
        finally:
            remove()

    def close(self) -> None:
        """Stop following the session and release the subscription. Idempotent."""
        remove, self._remove_session_listener = self._remove_session_listener, None
        if remove is not None:
            remove()
        self._release()
