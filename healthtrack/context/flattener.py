"""Merge conversation threads into one capped message list."""

from __future__ import annotations

from collections.abc import Iterable

from healthtrack.models import ConversationThread, Message


def flatten_conversations(
    threads: Iterable[ConversationThread],
    cap_messages: int,
) -> list[Message]:
    """Concatenate thread messages in the given thread order.

    The cap is checked after each whole thread is appended, so the last
    thread may carry the result past ``cap_messages``. Messages missing a
    role or text are dropped. Threads are not re-sorted: callers pass them
    most recently updated first, and each thread keeps its stored order.
    """
    flattened: list[Message] = []
    for thread in threads:
        for message in thread.messages:
            if not message.role or not message.text:
                continue
            flattened.append(Message(role=message.role, text=message.text))
        if len(flattened) > cap_messages:
            break
    return flattened
