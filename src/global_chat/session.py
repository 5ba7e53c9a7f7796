"""
Session lifecycle — drives authentication and gates everything downstream.

Phases:
- connecting: initial, until the provider reports its first auth state
- auth_required: no identity; a sign-in attempt is made on entry
- online: identity present
- init_error: the provider could not be initialised (terminal)

Sign-in uses the out-of-band token when one was configured, otherwise
anonymous sign-in. Failures are logged and leave the session in
auth_required; the next auth-state notification triggers the next attempt.
"""

import asyncio
import logging
from typing import AsyncGenerator, Callable, Optional

from global_chat.backend import IdentityProvider, Release
from global_chat.models.identity import Identity
from global_chat.models.state import Phase, SessionState

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionState], None]


class SessionController:
    def __init__(self, provider: IdentityProvider, auth_token: Optional[str] = None):
        self._provider = provider
        self._auth_token = auth_token
        self._state = SessionState()
        self._listeners: list[SessionListener] = []
        self._remove_observer: Optional[Release] = None
        self._sign_in_task: Optional[asyncio.Task] = None
        self._started = False
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> str:
        return self._state.phase

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Add a state listener. Returns a cleanup function."""
        self._listeners.append(listener)

        def remove() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass
        return remove

    async def start(self) -> None:
        """Initialise the provider, observe auth state, attempt sign-in eagerly."""
        if self._started or self._closed or self._state.phase == Phase.INIT_ERROR:
            return
        self._started = True
        try:
            await self._provider.initialize()
            self._remove_observer = self._provider.observe_auth_state(self._on_auth_state)
        except Exception as e:
            logger.error(f"Identity provider init error: {e}")
            self.fail(e)
            return
        # Cold start: don't wait for the first notification
        self._schedule_sign_in()

    def fail(self, error: BaseException) -> None:
        """Enter init_error. Terminal for this controller."""
        if self._state.phase != Phase.INIT_ERROR:
            logger.debug(f"Session entering init_error: {error!r}")
        self._release_observer()
        self._cancel_sign_in()
        self._set_state(SessionState(phase=Phase.INIT_ERROR))

    def _on_auth_state(self, identity: Optional[Identity]) -> None:
        if self._closed or self._state.phase == Phase.INIT_ERROR:
            return
        if identity is not None:
            self._set_state(SessionState(phase=Phase.ONLINE, identity=identity))
        else:
            self._set_state(SessionState(phase=Phase.AUTH_REQUIRED))
            self._schedule_sign_in()

    def _schedule_sign_in(self) -> None:
        # Coalesce: the eager attempt and the notification-driven one share a task
        if self._sign_in_task is not None and not self._sign_in_task.done():
            return
        self._sign_in_task = asyncio.get_running_loop().create_task(self.sign_in())

    async def sign_in(self) -> Optional[Identity]:
        """Attempt sign-in once. No-op when an identity is already held."""
        if self._state.identity is not None:
            return self._state.identity
        try:
            if self._auth_token:
                identity = await self._provider.sign_in_with_token(self._auth_token)
            else:
                identity = await self._provider.sign_in_anonymously()
        except Exception as e:
            logger.error(f"Auth error: {e}")
            if self._state.phase == Phase.CONNECTING and not self._closed:
                self._set_state(SessionState(phase=Phase.AUTH_REQUIRED))
            return None
        if self._closed or self._state.phase == Phase.INIT_ERROR:
            return None
        self._set_state(SessionState(phase=Phase.ONLINE, identity=identity))
        return identity

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        logger.debug(f"Session {self._state.phase} -> {state.phase}")
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    async def states(self) -> AsyncGenerator[SessionState, None]:
        """Yield the current state, then every subsequent one, until closed by the consumer."""
        queue: asyncio.Queue[SessionState] = asyncio.Queue()
        remove = self.add_listener(queue.put_nowait)
        try:
            yield self._state
            while True:
                yield await queue.get()
        finally:
            remove()

    async def wait_for(self, *phases: str, timeout: Optional[float] = None) -> SessionState:
        """Wait until the session reaches one of ``phases``."""
        if self._state.phase in phases:
            return self._state
        future: asyncio.Future[SessionState] = asyncio.get_running_loop().create_future()

        def check(state: SessionState) -> None:
            if state.phase in phases and not future.done():
                future.set_result(state)

        remove = self.add_listener(check)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Timed out waiting for session phase {'/'.join(phases)} after {timeout}s")
        finally:
            remove()

    def _release_observer(self) -> None:
        remove, self._remove_observer = self._remove_observer, None
        if remove is not None:
            remove()

    def _cancel_sign_in(self) -> Optional[asyncio.Task]:
        task, self._sign_in_task = self._sign_in_task, None
        if task is not None and not task.done():
            task.cancel()
            return task
        return None

    async def close(self) -> None:
        """Release the provider observation and any pending sign-in. Idempotent."""
        self._closed = True
        self._release_observer()
        task = self._cancel_sign_in()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._listeners.clear()
