"""Message ordering policy."""

from global_chat.models.message import Message
from global_chat.ordering import order_messages


def msg(id: str, ts=None, author: str = "u1") -> Message:
    return Message(id=id, author_id=author, text=f"text {id}", server_timestamp=ts)


class TestOrdering:
    def test_sorts_ascending_regardless_of_snapshot_position(self):
        later, earlier = msg("later", 2000), msg("earlier", 1000)

        assert [m.id for m in order_messages([later, earlier])] == ["earlier", "later"]

    def test_pending_messages_sort_earliest(self):
        messages = [msg("a", 1000), msg("pending"), msg("b", 500)]

        assert [m.id for m in order_messages(messages)] == ["pending", "b", "a"]

    def test_ties_keep_snapshot_order(self):
        messages = [msg("x", 100), msg("p1"), msg("y", 100), msg("p2")]

        assert [m.id for m in order_messages(messages)] == ["p1", "p2", "x", "y"]

    def test_stamped_message_resorts_by_true_time(self):
        before = [msg("old", 1000), msg("mine")]
        after = [msg("old", 1000), msg("mine", 1500)]

        assert [m.id for m in order_messages(before)] == ["mine", "old"]
        assert [m.id for m in order_messages(after)] == ["old", "mine"]

    def test_deterministic_and_pure(self):
        snapshot = [msg("c", 3), msg("n1"), msg("a", 1), msg("n2"), msg("b", 1)]
        original = list(snapshot)

        first = order_messages(snapshot)
        second = order_messages(snapshot)

        assert first == second
        assert order_messages(first) == first
        assert snapshot == original

    def test_empty_snapshot(self):
        assert order_messages([]) == ()
