"""Basic unit tests for the global-chat package."""

from global_chat import (
    AsyncGlobalChat,
    GlobalChatError,
    InitializationError,
    AuthenticationError,
    SubscriptionError,
    WriteError,
    ConnectionError,
    Phase,
    FeedStatus,
    __version__,
)
from global_chat.models.events import C2SEvent, S2CEvent


def test_version():
    assert __version__ == "0.1.0"


def test_public_exports():
    assert AsyncGlobalChat is not None


def test_error_hierarchy():
    for error_type in (InitializationError, AuthenticationError, SubscriptionError, WriteError, ConnectionError):
        assert issubclass(error_type, GlobalChatError)


def test_error_attributes():
    err = GlobalChatError(code="test_code", message="something broke")
    assert err.code == "test_code"
    assert str(err) == "something broke"
    assert err.details is None

    assert InitializationError("no backend").code == "init_error"
    assert AuthenticationError("denied").code == "auth_error"
    assert AuthenticationError("denied", code="auth_bad_response").code == "auth_bad_response"
    assert WriteError("rejected", details={"path": "/x"}).details == {"path": "/x"}
    assert SubscriptionError("gone").code == "subscription_error"
    assert ConnectionError("down").code == "connection_error"


def test_phase_and_status_constants():
    assert Phase.ALL == {Phase.CONNECTING, Phase.AUTH_REQUIRED, Phase.ONLINE, Phase.INIT_ERROR}
    assert FeedStatus.DEGRADED == "degraded"


def test_event_constants():
    assert C2SEvent.COLLECTION_SUBSCRIBE == "collection:subscribe"
    assert S2CEvent.COLLECTION_SNAPSHOT == "collection:snapshot"
