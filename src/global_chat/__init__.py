"""
global-chat — realtime client for a single public chat room.

Anonymous (or token) sign-in, one live subscription to the shared message
collection, and a guarded composer for posting plain-text messages.
"""

__version__ = "0.1.0"

from global_chat.client import AsyncGlobalChat
from global_chat.auth import LocalIdentityProvider, RestIdentityProvider
from global_chat.config import ChatConfig, load_config
from global_chat.errors import (
    GlobalChatError,
    InitializationError,
    AuthenticationError,
    SubscriptionError,
    WriteError,
    ConnectionError,
)
from global_chat.models.identity import Identity
from global_chat.models.message import Message
from global_chat.models.state import FeedState, FeedStatus, Phase, SessionState
from global_chat.ordering import order_messages

__all__ = [
    "AsyncGlobalChat",
    "LocalIdentityProvider",
    "RestIdentityProvider",
    "ChatConfig",
    "load_config",
    "GlobalChatError",
    "InitializationError",
    "AuthenticationError",
    "SubscriptionError",
    "WriteError",
    "ConnectionError",
    "Identity",
    "Message",
    "FeedState",
    "FeedStatus",
    "Phase",
    "SessionState",
    "order_messages",
]
