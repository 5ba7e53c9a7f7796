"""
Message ordering policy.

Messages sort ascending by server timestamp; a message the backend has not
stamped yet counts as timestamp 0, so it sits with the earliest messages until
a later snapshot carries its real commit time. Ties keep snapshot order.
"""

from typing import Iterable

from global_chat.models.message import Message


def order_key(position: int, message: Message) -> tuple[int, int]:
    return (message.server_timestamp if message.server_timestamp is not None else 0, position)


def order_messages(messages: Iterable[Message]) -> tuple[Message, ...]:
    """Pure and deterministic: the same snapshot always yields the same order."""
    indexed = sorted(enumerate(messages), key=lambda pair: order_key(*pair))
    return tuple(message for _, message in indexed)
