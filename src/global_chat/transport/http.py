"""
REST HTTP client for the identity service.
"""

from typing import Any, Optional

import httpx

from global_chat.errors import GlobalChatError

DEFAULT_BASE_URL = "https://identitytoolkit.googleapis.com/v1"


class HttpClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        from global_chat import __version__
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": f"global-chat/{__version__}", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        """Pull the backend's error code out of ``{"error": {"message": ...}}`` bodies."""
        try:
            body = resp.json()
        except ValueError:
            return resp.text[:200]
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return str(body["error"].get("message", ""))[:200]
        return resp.text[:200]

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.post(path, json=body or {}, params={"key": self._api_key})
        if resp.status_code >= 400:
            raise GlobalChatError(
                "http_error",
                f"HTTP {resp.status_code}: {self._error_message(resp)}",
                {"status": resp.status_code},
            )
        return resp.json()

    async def close(self) -> None:
        await self._client.aclose()
