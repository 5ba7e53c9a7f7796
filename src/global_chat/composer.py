"""
Composer — local draft plus a guarded submit.

The composer never touches the feed. A submitted message shows up once the
subscription delivers a snapshot containing it.
"""

import logging
from typing import Optional

from global_chat.backend import DocumentStore
from global_chat.models.message import new_message_document
from global_chat.session import SessionController

logger = logging.getLogger(__name__)


class Composer:
    def __init__(self, session: SessionController, store: DocumentStore, collection_path: str):
        self._session = session
        self._store = store
        self._collection_path = collection_path
        self.draft = ""

    @property
    def can_submit(self) -> bool:
        return self._session.state.is_ready and bool(self.draft.strip())

    def clear(self) -> None:
        self.draft = ""

    async def submit(self) -> Optional[str]:
        """Write the trimmed draft as a new message.

        Returns the new document id, or None when submit is unavailable or the
        write failed. A failed write keeps the draft for a manual retry, and a
        draft edited while the write was in flight is left alone.
        """
        state = self._session.state
        text = self.draft.strip()
        if not state.is_ready or not text:
            return None
        author_id = state.identity.id  # type: ignore[union-attr]
        try:
            doc_id = await self._store.add_document(
                self._collection_path, new_message_document(author_id, text),
            )
        except Exception as e:
            logger.error(f"Send error: {e}")
            return None
        # Keep anything typed while the write was in flight
        if self.draft.strip() == text:
            self.clear()
        return doc_id
