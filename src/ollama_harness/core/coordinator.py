"""Coordinator: one logical chat turn, including the tool-call loop.

    history + tools -> request -> client -> reply
        reply has tool calls? -> dispatch -> tool messages -> next round
        otherwise             -> return reply

The loop is explicit rather than recursive so the number of tool rounds can
be capped with ``max_tool_rounds``.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Iterable

from ollama_harness.config import DEFAULT_MAX_TOOL_ROUNDS, ClientConfig
from ollama_harness.errors import ToolRoundLimitExceeded
from ollama_harness.history import ConversationHistory
from ollama_harness.llm.client import OllamaClient
from ollama_harness.llm.options import GenerationOptions, ResponseFormat, ThinkSetting
from ollama_harness.llm.requests import ChatRequest
from ollama_harness.stream.decoder import AbortSignal
from ollama_harness.tools.registry import ToolRegistry
from ollama_harness.types import ChatResponse, Message, MessageRole, ToolCall

_logger = logging.getLogger(__name__)


class Coordinator:
    """Drive chat turns where the model may call registered tools.

    Parameters
    ----------
    client:
        Client used for every round-trip.
    model:
        Model name.
    history:
        Conversation history (a fresh unbounded one if omitted).  Not safe to
        share between concurrently running ``chat()`` calls.
    tools:
        Tool registry (empty if omitted).
    options:
        Generation options for every request.
    format:
        Output constraint.  With tools registered it is only sent once the
        history ends in a tool result: servers that constrain the output shape
        on the first turn never emit a tool call.
    think:
        Thinking setting for every request.
    max_tool_rounds:
        Cap on tool-call rounds per ``chat()`` call; ``None`` = unbounded.
    """

    def __init__(
        self,
        client: OllamaClient,
        model: str,
        history: ConversationHistory | None = None,
        tools: ToolRegistry | None = None,
        options: GenerationOptions | None = None,
        format: ResponseFormat | None = None,
        think: ThinkSetting | None = None,
        max_tool_rounds: int | None = DEFAULT_MAX_TOOL_ROUNDS,
    ) -> None:
        self._client = client
        self._model = model
        self._history = history if history is not None else ConversationHistory()
        self._tools = tools if tools is not None else ToolRegistry()
        self._options = options
        self._format = format
        self._think = think
        self._max_tool_rounds = max_tool_rounds

    @classmethod
    def from_config(
        cls,
        client: OllamaClient,
        config: ClientConfig,
        tools: ToolRegistry | None = None,
        format: ResponseFormat | None = None,
    ) -> Coordinator:
        return cls(
            client,
            config.model,
            history=ConversationHistory(config.history_capacity),
            tools=tools,
            options=GenerationOptions.from_dict(config.options) if config.options else None,
            format=format,
            think=config.think,
            max_tool_rounds=config.max_tool_rounds,
        )

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _format_for_request(self) -> ResponseFormat | None:
        if self._format is None:
            return None
        if len(self._tools) == 0:
            return self._format
        last = self._history.last()
        if last is not None and last.role == MessageRole.TOOL:
            return self._format
        return None

    def _build_request(self, messages: list[Message]) -> ChatRequest:
        return ChatRequest(
            model=self._model,
            messages=messages,
            tools=self._tools.describe_all(),
            options=self._options,
            format=self._format_for_request(),
            think=self._think,
        )

    def _check_round_limit(self, rounds: int) -> None:
        if self._max_tool_rounds is not None and rounds >= self._max_tool_rounds:
            _logger.warning(
                "Model requested tools again after %d rounds, stopping", rounds,
            )
            raise ToolRoundLimitExceeded(self._max_tool_rounds)

    async def _run_tools(self, calls: list[ToolCall]) -> None:
        """Dispatch *calls* in order; the first failure propagates."""
        for call in calls:
            _logger.debug("Tool call: %s(%s)", call.name, call.arguments)
            result = await self._tools.dispatch(call)
            _logger.debug("Tool response from %s: %s", call.name, result[:200])
            self._history.push(Message.tool(result, tool_name=call.name))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def chat(self, messages: Iterable[Message] = ()) -> ChatResponse:
        """Run one chat turn and return the final reply without tool calls.

        Raises
        ------
        TransportError, DecodeError, ServerError
            From the round-trip.
        UnknownTool, InvalidArguments, ToolExecutionFailed
            From the first failing tool dispatch.
        ToolRoundLimitExceeded
            The server kept asking for tools past ``max_tool_rounds``.
        """
        pending = list(messages)
        for m in pending:
            _logger.debug("Hit %s with %s: %r", self._model, m.role.value, m.content)

        rounds = 0
        while True:
            request = self._build_request(pending)
            response = await self._client.chat_with_history(self._history, request)

            calls = response.message.tool_calls
            if not calls:
                _logger.debug(
                    "Response from %s: %r", response.model, response.message.content,
                )
                return response

            self._check_round_limit(rounds)
            rounds += 1
            await self._run_tools(calls)
            pending = []

    async def chat_stream(
        self,
        messages: Iterable[Message] = (),
        abort: AbortSignal | None = None,
    ) -> AsyncIterator[ChatResponse]:
        """Streaming ``chat()``: yields every frame of every round.

        Tool rounds run between streams; the final terminal frame is the
        reply without tool calls.  *abort* is checked once per frame of every
        round.  A round that ends without a terminal frame raises
        ``DecodeError``.
        """
        pending = list(messages)
        rounds = 0
        while True:
            request = self._build_request(pending)
            async for response in self._client.chat_stream_with_history(
                self._history, request, abort=abort,
            ):
                yield response

            last = self._history.last()
            if last is None or not last.tool_calls:
                return

            self._check_round_limit(rounds)
            rounds += 1
            await self._run_tools(last.tool_calls)
            pending = []
