"""
Identity provider bindings.

``RestIdentityProvider`` talks to an identity-toolkit style REST service;
``LocalIdentityProvider`` issues offline identities for local mode.
Both follow the ``IdentityProvider`` contract in ``global_chat.backend``.
"""

import asyncio
import hashlib
import logging
import secrets
from typing import Any, Optional

from global_chat.backend import AuthStateCallback, Release
from global_chat.errors import AuthenticationError, GlobalChatError, InitializationError
from global_chat.models.identity import Identity
from global_chat.transport.http import HttpClient

logger = logging.getLogger(__name__)


class _ObservedIdentity:
    """Current identity plus the observers that want to hear about it."""

    def __init__(self) -> None:
        self._current: Optional[Identity] = None
        self._observers: list[AuthStateCallback] = []

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    def observe_auth_state(self, callback: AuthStateCallback) -> Release:
        """Register an observer. It hears the current identity on the next loop turn."""
        self._observers.append(callback)
        asyncio.get_running_loop().call_soon(self._deliver, callback)

        def remove() -> None:
            try:
                self._observers.remove(callback)
            except ValueError:
                pass
        return remove

    def sign_out(self) -> None:
        self._set_identity(None)

    def _deliver(self, callback: AuthStateCallback) -> None:
        if callback in self._observers:
            callback(self._current)

    def _set_identity(self, identity: Optional[Identity]) -> None:
        if identity == self._current:
            return
        self._current = identity
        logger.debug(f"Auth state changed: {identity!r}")
        for observer in list(self._observers):
            observer(identity)


class RestIdentityProvider(_ObservedIdentity):
    def __init__(self, http: HttpClient, api_key: str):
        super().__init__()
        self._http = http
        self._api_key = api_key
        self._in_flight: Optional[asyncio.Task[Identity]] = None

    async def initialize(self) -> None:
        if not self._api_key:
            raise InitializationError("Identity provider requires an api_key")

    async def sign_in_anonymously(self) -> Identity:
        """Create an anonymous account, or return the signed-in identity."""
        return await self._sign_in(
            "Anonymous sign-in", "/accounts:signUp", {"returnSecureToken": True}, anonymous=True,
        )

    async def sign_in_with_token(self, token: str) -> Identity:
        """Exchange an out-of-band custom token, or return the signed-in identity."""
        return await self._sign_in(
            "Token sign-in", "/accounts:signInWithCustomToken",
            {"token": token, "returnSecureToken": True}, anonymous=False,
        )

    async def _sign_in(self, label: str, path: str, body: dict[str, Any], anonymous: bool) -> Identity:
        if self._current is not None:
            return self._current
        # Overlapping callers share one request so only one account is created
        if self._in_flight is None or self._in_flight.done():
            self._in_flight = asyncio.get_running_loop().create_task(
                self._request_identity(label, path, body, anonymous),
            )
        return await asyncio.shield(self._in_flight)

    async def _request_identity(self, label: str, path: str, body: dict[str, Any], anonymous: bool) -> Identity:
        try:
            result = await self._http.post(path, body)
        except GlobalChatError as e:
            raise AuthenticationError(f"{label} failed: {e}")
        identity = self._identity_from(result, anonymous=anonymous)
        self._set_identity(identity)
        return identity

    @staticmethod
    def _identity_from(result: Any, anonymous: bool) -> Identity:
        if not isinstance(result, dict) or not result.get("localId"):
            raise AuthenticationError("Sign-in response carried no account id", code="auth_bad_response")
        return Identity(
            id=result["localId"],
            is_anonymous=anonymous,
            id_token=result.get("idToken"),
            refresh_token=result.get("refreshToken"),
        )

    async def close(self) -> None:
        self._observers.clear()
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.cancel()
        await self._http.close()


class LocalIdentityProvider(_ObservedIdentity):
    """Offline provider. Identities are random and live as long as the process."""

    async def initialize(self) -> None:
        pass

    async def sign_in_anonymously(self) -> Identity:
        if self._current is None:
            self._set_identity(Identity(id=secrets.token_hex(14)))
        return self._current  # type: ignore[return-value]

    async def sign_in_with_token(self, token: str) -> Identity:
        if self._current is None:
            if not token:
                raise AuthenticationError("Empty sign-in token")
            self._set_identity(Identity(id=hashlib.sha256(token.encode()).hexdigest()[:28], is_anonymous=False, id_token=token))
        return self._current  # type: ignore[return-value]

    async def close(self) -> None:
        self._observers.clear()
