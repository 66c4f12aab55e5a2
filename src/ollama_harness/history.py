"""Bounded, role-aware conversation history.

``ConversationHistory`` is the synchronous store a single task owns.
``ConversationStore`` keeps one history per conversation id for applications
that share state across tasks; each id has its own ``asyncio.Lock`` held only
for the in-memory update, never across a network await.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Iterable, Iterator, Union

from ollama_harness.types import Message, MessageRole

_logger = logging.getLogger(__name__)

_MIN_CAPACITY = 2


class ConversationHistory:
    """Ordered message list with an optional capacity.

    - A system message always sits at index 0; pushing another one replaces it.
    - When full, the oldest non-system message is evicted before a push.
    - Insertion order of non-system messages is preserved.

    Parameters
    ----------
    capacity:
        Maximum number of messages (``None`` = unbounded).  Values below 2
        are clamped to 2.
    messages:
        Seed messages, pushed in order.
    """

    def __init__(
        self,
        capacity: int | None = None,
        messages: Iterable[Message] = (),
    ) -> None:
        self._capacity = None if capacity is None else max(_MIN_CAPACITY, capacity)
        self._messages: list[Message] = []
        for message in messages:
            self.push(message)

    @property
    def capacity(self) -> int | None:
        return self._capacity

    def push(self, message: Message) -> None:
        """Append *message*, evicting the oldest non-system message if full."""
        msgs = self._messages
        has_system = bool(msgs) and msgs[0].role == MessageRole.SYSTEM

        if message.role == MessageRole.SYSTEM and has_system:
            msgs[0] = message
            return

        if self._capacity is not None and len(msgs) >= self._capacity:
            evicted = msgs.pop(1 if has_system else 0)
            _logger.debug("History full, evicted %s message", evicted.role.value)

        if message.role == MessageRole.SYSTEM:
            msgs.insert(0, message)
        else:
            msgs.append(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.push(message)

    def snapshot(self) -> tuple[Message, ...]:
        """Read-only ordered view of the current messages."""
        return tuple(self._messages)

    def preview(self, messages: Iterable[Message]) -> tuple[Message, ...]:
        """Snapshot as it would look after pushing *messages*.

        The history itself is not modified.
        """
        staged = self.copy()
        staged.extend(messages)
        return staged.snapshot()

    def last(self) -> Message | None:
        return self._messages[-1] if self._messages else None

    def copy(self) -> ConversationHistory:
        clone = ConversationHistory(self._capacity)
        clone._messages = list(self._messages)
        return clone

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __repr__(self) -> str:
        return (
            f"ConversationHistory(capacity={self._capacity}, "
            f"messages={len(self._messages)})"
        )


class Conversation:
    """Async handle on one conversation inside a ``ConversationStore``.

    Accepted anywhere a history is expected (client, aggregator).
    """

    def __init__(self, store: ConversationStore, conversation_id: str) -> None:
        self._store = store
        self.conversation_id = conversation_id

    async def push(self, message: Message) -> None:
        await self._store.push(self.conversation_id, message)

    async def extend(self, messages: Iterable[Message]) -> None:
        await self._store.extend(self.conversation_id, messages)

    async def snapshot(self) -> tuple[Message, ...]:
        return await self._store.snapshot(self.conversation_id)

    async def preview(self, messages: Iterable[Message]) -> tuple[Message, ...]:
        return await self._store.preview(self.conversation_id, messages)

    async def last(self) -> Message | None:
        snapshot = await self.snapshot()
        return snapshot[-1] if snapshot else None


class ConversationStore:
    """Histories keyed by conversation id, one lock per id.

    Usage::

        store = ConversationStore(capacity=20)
        chat = store.conversation("user-42")
        response = await client.chat_with_history(chat, request)
    """

    def __init__(self, capacity: int | None = None) -> None:
        self._capacity = capacity
        self._histories: dict[str, ConversationHistory] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def conversation(self, conversation_id: str) -> Conversation:
        return Conversation(self, conversation_id)

    def ids(self) -> list[str]:
        return list(self._histories.keys())

    def _lock(self, conversation_id: str) -> asyncio.Lock:
        return self._locks.setdefault(conversation_id, asyncio.Lock())

    def _history(self, conversation_id: str) -> ConversationHistory:
        history = self._histories.get(conversation_id)
        if history is None:
            history = ConversationHistory(self._capacity)
            self._histories[conversation_id] = history
        return history

    async def push(self, conversation_id: str, message: Message) -> None:
        async with self._lock(conversation_id):
            self._history(conversation_id).push(message)

    async def extend(self, conversation_id: str, messages: Iterable[Message]) -> None:
        async with self._lock(conversation_id):
            self._history(conversation_id).extend(messages)

    async def snapshot(self, conversation_id: str) -> tuple[Message, ...]:
        if conversation_id not in self._locks:
            return ()
        async with self._lock(conversation_id):
            history = self._histories.get(conversation_id)
            return history.snapshot() if history is not None else ()

    async def preview(
        self, conversation_id: str, messages: Iterable[Message],
    ) -> tuple[Message, ...]:
        async with self._lock(conversation_id):
            history = self._histories.get(conversation_id)
            if history is None:
                history = ConversationHistory(self._capacity)
            return history.preview(messages)

    async def clear(self, conversation_id: str) -> None:
        """Forget the conversation, releasing its lock as well."""
        async with self._lock(conversation_id):
            self._histories.pop(conversation_id, None)
        # Updates never await while holding the lock, so no other task can
        # be mid-update on the old one.
        self._locks.pop(conversation_id, None)


# ---------------------------------------------------------------------------
# Helpers accepting either history flavour
# ---------------------------------------------------------------------------

HistoryLike = Union[ConversationHistory, Conversation]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


async def preview_messages(
    history: HistoryLike, messages: Iterable[Message],
) -> tuple[Message, ...]:
    """``history.preview(messages)`` for sync or async histories."""
    return await _resolve(history.preview(list(messages)))


async def commit_messages(history: HistoryLike, messages: Iterable[Message]) -> None:
    """Push *messages* in order as one update."""
    await _resolve(history.extend(list(messages)))


async def last_message(history: HistoryLike) -> Message | None:
    return await _resolve(history.last())
