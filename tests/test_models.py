"""Message, identity and state models."""

import pytest
from pydantic import ValidationError

from global_chat.models.identity import Identity, short_id
from global_chat.models.message import SERVER_TIMESTAMP, DocumentSnapshot, Message, new_message_document
from global_chat.models.state import Phase, SessionState


class TestMessage:
    def test_from_document_reads_wire_fields(self):
        doc = DocumentSnapshot(id="m1", data={"authorId": "abc12345", "text": " hi ", "timestamp": 1000})

        message = Message.from_document(doc)

        assert message.id == "m1"
        assert message.author_id == "abc12345"
        assert message.text == "hi"
        assert message.server_timestamp == 1000
        assert not message.is_pending

    def test_accepts_legacy_user_id_field(self):
        doc = DocumentSnapshot(id="m1", data={"userId": "u9", "text": "hey"})

        assert Message.from_document(doc).author_id == "u9"

    def test_document_id_wins_over_data_id(self):
        doc = DocumentSnapshot(id="real", data={"id": "fake", "authorId": "u", "text": "t"})

        assert Message.from_document(doc).id == "real"

    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        (SERVER_TIMESTAMP, None),
        (1500, 1500),
        (1500.9, 1500),
        ({"seconds": 2, "nanoseconds": 5_000_000}, 2005),
        ({"_seconds": 1, "_nanoseconds": 0}, 1000),
        ("1970-01-01T00:00:01Z", 1000),
    ])
    def test_timestamp_shapes(self, raw, expected):
        message = Message(id="m", author_id="u", text="t", server_timestamp=raw)

        assert message.server_timestamp == expected

    def test_rejects_blank_text(self):
        with pytest.raises(ValidationError):
            Message(id="m", author_id="u", text="  \n ")

    def test_rejects_unknown_timestamp_shape(self):
        with pytest.raises(ValidationError):
            Message(id="m", author_id="u", text="t", server_timestamp=["nope"])

    @pytest.mark.parametrize("raw", [
        float("inf"),
        float("-inf"),
        float("nan"),
        {"seconds": float("inf")},
        {"seconds": 1, "nanoseconds": float("nan")},
        {"seconds": {"nested": 1}},
    ])
    def test_rejects_non_finite_timestamps(self, raw):
        with pytest.raises(ValidationError):
            Message(id="m", author_id="u", text="t", server_timestamp=raw)

    def test_new_message_document_requests_server_timestamp(self):
        doc = new_message_document("u1", "hello")

        assert doc == {"text": "hello", "authorId": "u1", "timestamp": {".sv": "timestamp"}}


class TestIdentity:
    def test_short_id(self):
        assert short_id("abcdefghijkl") == "abcdefgh"
        assert short_id(None) == "unknown"
        assert short_id("") == "unknown"

    def test_repr_hides_tokens(self):
        identity = Identity(id="u1", id_token="secret-token")

        assert "secret-token" not in repr(identity)

    def test_frozen(self):
        identity = Identity(id="u1")
        with pytest.raises(ValidationError):
            identity.id = "u2"


class TestSessionState:
    def test_online_requires_identity(self):
        with pytest.raises(ValidationError):
            SessionState(phase=Phase.ONLINE)

    def test_rejects_unknown_phase(self):
        with pytest.raises(ValidationError):
            SessionState(phase="sleeping")

    def test_ready_only_when_online(self):
        assert SessionState(phase=Phase.ONLINE, identity=Identity(id="u")).is_ready
        assert not SessionState(phase=Phase.AUTH_REQUIRED).is_ready
        assert SessionState().status == "Connecting..."
