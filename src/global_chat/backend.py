"""
Collaborator contracts the core consumes.

Callbacks are plain callables invoked on the event loop. Any handle returned
by ``observe_auth_state`` or ``subscribe`` releases its registration when
called and must be safe to call more than once. Snapshot and error
callbacks fire from the loop, never from inside ``subscribe`` itself.
"""

from typing import Any, Callable, Optional, Protocol

from global_chat.models.identity import Identity
from global_chat.models.message import DocumentSnapshot

AuthStateCallback = Callable[[Optional[Identity]], None]
SnapshotCallback = Callable[[list[DocumentSnapshot]], None]
ErrorCallback = Callable[[Exception], None]
Release = Callable[[], None]


class IdentityProvider(Protocol):
    """Authenticator binding.

    Contract:
    - ``observe_auth_state`` delivers the current identity (possibly None) at
      least once after registration, then on every change.
    - Sign-in while a session already exists returns that identity and
      performs no new authentication. Sign-in while another attempt is in
      flight awaits that attempt. Concurrent sign-in attempts are therefore
      harmless.
    """

    async def initialize(self) -> None: ...

    def observe_auth_state(self, callback: AuthStateCallback) -> Release: ...

    async def sign_in_anonymously(self) -> Identity: ...

    async def sign_in_with_token(self, token: str) -> Identity: ...

    async def close(self) -> None: ...


class DocumentStore(Protocol):
    """Realtime document collection with server-assigned timestamps."""

    async def connect(self) -> None: ...

    def subscribe(
        self,
        collection_path: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Release: ...

    async def add_document(self, collection_path: str, data: dict[str, Any]) -> str: ...

    async def close(self) -> None: ...
