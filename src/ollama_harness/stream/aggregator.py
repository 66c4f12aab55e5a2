"""Accumulate streamed partial responses into one finished message.

``StreamAggregator`` passes chat frames through to the caller unchanged and
commits the assembled assistant message to history only when the terminal
frame arrives, so an abandoned stream never leaves half a message behind.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, Iterable

from ollama_harness.errors import DecodeError
from ollama_harness.history import HistoryLike, commit_messages
from ollama_harness.types import (
    ChatResponse,
    GenerationResponse,
    Message,
    MessageRole,
    ToolCall,
)

_logger = logging.getLogger(__name__)


class StreamAggregator:
    """Commit exactly one assistant message per completed chat round-trip.

    Parameters
    ----------
    history:
        ``ConversationHistory`` or a store ``Conversation``.
    staged:
        The caller's new input messages for this round-trip.  They are
        committed together with the reply, ahead of it.
    """

    def __init__(self, history: HistoryLike, staged: Iterable[Message] = ()) -> None:
        self._history = history
        self._staged = list(staged)
        self._content: list[str] = []
        self._thinking: list[str] = []
        self._tool_calls: list[ToolCall] = []
        self._images: list[str] = []
        self.message: Message | None = None
        self.final: ChatResponse | None = None

    @property
    def content(self) -> str:
        """Content accumulated so far."""
        return "".join(self._content)

    @property
    def committed(self) -> bool:
        return self.message is not None

    def _accumulate(self, response: ChatResponse) -> None:
        msg = response.message
        if msg.content:
            self._content.append(msg.content)
        if msg.thinking:
            self._thinking.append(msg.thinking)
        if msg.tool_calls:
            self._tool_calls.extend(msg.tool_calls)
        if msg.images:
            self._images.extend(msg.images)

    def _build_message(self) -> Message:
        thinking = "".join(self._thinking)
        return Message(
            role=MessageRole.ASSISTANT,
            content=self.content,
            tool_calls=list(self._tool_calls),
            images=list(self._images) or None,
            thinking=thinking or None,
        )

    async def aggregate(
        self, responses: AsyncIterable[ChatResponse],
    ) -> AsyncIterator[ChatResponse]:
        """Yield every frame, committing to history on the terminal one.

        Raises ``DecodeError`` if the input ends before a terminal frame;
        nothing is committed in that case.
        """
        async for response in responses:
            if self.message is not None:
                _logger.warning("Frame received after terminal frame, ignoring")
                continue
            self._accumulate(response)
            if response.done:
                message = self._build_message()
                await commit_messages(self._history, [*self._staged, message])
                self.message = message
                self.final = response
                _logger.debug(
                    "Committed assistant message (%d chars, %d tool calls)",
                    len(message.content), len(message.tool_calls),
                )
            yield response
        if self.message is None:
            raise DecodeError("Stream ended before terminal frame")


class GenerationAggregator:
    """Accumulate a generation stream; keeps the continuation ``context``."""

    def __init__(self) -> None:
        self._text: list[str] = []
        self._thinking: list[str] = []
        self.final: GenerationResponse | None = None

    @property
    def text(self) -> str:
        return "".join(self._text)

    @property
    def thinking(self) -> str:
        return "".join(self._thinking)

    @property
    def context(self) -> list[int] | None:
        """Continuation token from the terminal frame, if any."""
        return self.final.context if self.final is not None else None

    async def aggregate(
        self, responses: AsyncIterable[GenerationResponse],
    ) -> AsyncIterator[GenerationResponse]:
        async for response in responses:
            if response.response:
                self._text.append(response.response)
            if response.thinking:
                self._thinking.append(response.thinking)
            if response.done:
                self.final = response
            yield response
