"""
Process-start configuration.

Read once at startup from an optional JSON file, then the environment.
Anything missing or malformed falls back to the placeholder defaults below;
loading never raises.

Environment:
  GLOBAL_CHAT_BACKEND       JSON object with backend connection fields
  GLOBAL_CHAT_AUTH_TOKEN    out-of-band custom sign-in token
  GLOBAL_CHAT_DEPLOYMENT    deployment namespace (default: global-chat)
  GLOBAL_CHAT_ROOM          room name (default: global_chat)
  GLOBAL_CHAT_REALTIME_URL  realtime store URL
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".global_chat" / "config.json"
DEFAULT_DEPLOYMENT_ID = "global-chat"
DEFAULT_ROOM = "global_chat"


class BackendConfig(BaseModel):
    api_key: str = "demo-api-key"
    auth_domain: str = "demo.firebaseapp.com"
    project_id: str = "demo"
    app_id: str = "1:123:web:demo"
    realtime_url: str = "http://localhost:8080"

    model_config = {"extra": "ignore"}


class ChatConfig(BaseModel):
    backend: BackendConfig = BackendConfig()
    auth_token: Optional[str] = None
    deployment_id: str = DEFAULT_DEPLOYMENT_ID
    room: str = DEFAULT_ROOM
    ready_timeout: float = 15.0
    write_timeout: float = 10.0

    model_config = {"extra": "ignore"}

    @property
    def collection_path(self) -> str:
        return f"/artifacts/{self.deployment_id}/public/data/{self.room}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, path: Optional[Path] = None) -> "ChatConfig":
        """Load the config file (``CONFIG_FILE`` by default), then apply the environment."""
        return load_config(path or CONFIG_FILE, environ=environ)


def _read_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {path}: expected a JSON object")
        return {}
    return data


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    backend_json = environ.get("GLOBAL_CHAT_BACKEND")
    if backend_json:
        try:
            backend = json.loads(backend_json)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring malformed GLOBAL_CHAT_BACKEND: {e}")
        else:
            if isinstance(backend, dict):
                overrides["backend"] = backend
            else:
                logger.warning("Ignoring GLOBAL_CHAT_BACKEND: expected a JSON object")
    if environ.get("GLOBAL_CHAT_REALTIME_URL"):
        overrides.setdefault("backend", {})["realtime_url"] = environ["GLOBAL_CHAT_REALTIME_URL"]
    if environ.get("GLOBAL_CHAT_AUTH_TOKEN"):
        overrides["auth_token"] = environ["GLOBAL_CHAT_AUTH_TOKEN"]
    if environ.get("GLOBAL_CHAT_DEPLOYMENT"):
        overrides["deployment_id"] = environ["GLOBAL_CHAT_DEPLOYMENT"]
    if environ.get("GLOBAL_CHAT_ROOM"):
        overrides["room"] = environ["GLOBAL_CHAT_ROOM"]
    return overrides


def load_config(path: Optional[Path] = CONFIG_FILE, environ: Optional[Mapping[str, str]] = None) -> ChatConfig:
    """Merge file and environment settings over the defaults."""
    raw = _read_file(path) if path is not None else {}
    overrides = _env_overrides(os.environ if environ is None else environ)
    file_backend = raw.get("backend") if isinstance(raw.get("backend"), dict) else {}
    backend = {**file_backend, **overrides.pop("backend", {})}
    merged = {**raw, **overrides, "backend": backend}
    try:
        return ChatConfig.model_validate(merged)
    except ValidationError as e:
        logger.warning(f"Invalid configuration, using defaults: {e.error_count()} error(s)")
        return ChatConfig()
