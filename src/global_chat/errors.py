"""
Global Chat error types.

Every failure carries a stable ``code`` so callers can branch without
parsing backend diagnostics.
"""

from typing import Any, Optional


class GlobalChatError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class InitializationError(GlobalChatError):
    """Backend client could not be constructed. Terminal for the session."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("init_error", message, details)


class AuthenticationError(GlobalChatError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class SubscriptionError(GlobalChatError):
    def __init__(self, message: str, code: str = "subscription_error", details: Optional[dict[str, Any]] = None):
        super().__init__(code, message, details)


class WriteError(GlobalChatError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("write_error", message, details)


class ConnectionError(GlobalChatError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
