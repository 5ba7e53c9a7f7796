"""
AsyncGlobalChat — wires the identity provider, document store, session
controller, feed synchronizer and composer into one client.
"""

import logging
from typing import Any, AsyncGenerator, Optional

from global_chat.auth import LocalIdentityProvider, RestIdentityProvider
from global_chat.backend import DocumentStore, IdentityProvider
from global_chat.composer import Composer
from global_chat.config import ChatConfig
from global_chat.errors import InitializationError
from global_chat.feed import FeedSynchronizer
from global_chat.models.message import Message
from global_chat.models.state import FeedState, SessionState
from global_chat.session import SessionController
from global_chat.transport.http import HttpClient
from global_chat.transport.memory import MemoryDocumentStore
from global_chat.transport.socketio import SocketIODocumentStore

logger = logging.getLogger(__name__)


class AsyncGlobalChat:
    """Async client for the public chat room."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        *,
        identity_provider: Optional[IdentityProvider] = None,
        store: Optional[DocumentStore] = None,
    ):
        self.config = config or ChatConfig.from_env()
        backend = self.config.backend
        self.identity_provider = identity_provider or RestIdentityProvider(
            HttpClient(api_key=backend.api_key), backend.api_key,
        )
        self.store = store or SocketIODocumentStore(
            backend.realtime_url,
            project_id=backend.project_id,
            ready_timeout=self.config.ready_timeout,
            write_timeout=self.config.write_timeout,
        )
        self.session = SessionController(self.identity_provider, auth_token=self.config.auth_token)
        self.feed = FeedSynchronizer(self.store, self.session, self.config.collection_path)
        self.composer = Composer(self.session, self.store, self.config.collection_path)
        self._started = False
        self._closed = False

    @classmethod
    def local(cls, config: Optional[ChatConfig] = None, store: Optional[MemoryDocumentStore] = None) -> "AsyncGlobalChat":
        """Offline client backed by an in-process store."""
        return cls(
            config or ChatConfig(),
            identity_provider=LocalIdentityProvider(),
            store=store or MemoryDocumentStore(),
        )

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.feed.messages

    async def start(self) -> None:
        """Connect the store, then start authentication and feed sync."""
        if self._started:
            return
        self._started = True
        self.feed.start()
        try:
            await self.store.connect()
        except Exception as e:
            logger.error(f"Backend init error: {e}")
            self.session.fail(InitializationError(f"Document store unavailable: {e}"))
            return
        await self.session.start()

    async def send(self, text: str) -> Optional[str]:
        """Replace the draft with ``text`` and submit it."""
        self.composer.draft = text
        return await self.composer.submit()

    def states(self) -> AsyncGenerator[SessionState, None]:
        return self.session.states()

    def updates(self) -> AsyncGenerator[FeedState, None]:
        return self.feed.updates()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.feed.close()
        await self.session.close()
        await self.identity_provider.close()
        await self.store.close()

    async def __aenter__(self) -> "AsyncGlobalChat":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
