"""Async client for the Ollama native API (``/api/chat``, ``/api/generate``,
``/api/embed``).

Every call goes through the same pipeline::

    transport bytes -> iter_frames -> decode_frames -> (StreamAggregator)

Malformed-frame policy: chat streams abort with ``DecodeError``; generation
streams log and skip the bad frame.  A server error envelope always aborts.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, TypeVar

from pydantic import BaseModel

from ollama_harness.config import ClientConfig
from ollama_harness.errors import DecodeError
from ollama_harness.history import HistoryLike, commit_messages, preview_messages
from ollama_harness.llm.requests import ChatRequest, EmbeddingsRequest, GenerationRequest
from ollama_harness.llm.transport import HttpTransport, Transport
from ollama_harness.stream.aggregator import StreamAggregator
from ollama_harness.stream.decoder import AbortSignal, decode_frame, decode_frames
from ollama_harness.stream.segmenter import iter_frames
from ollama_harness.types import ChatResponse, EmbeddingsResponse, GenerationResponse

_logger = logging.getLogger(__name__)

_CHAT_PATH = "/api/chat"
_GENERATE_PATH = "/api/generate"
_EMBED_PATH = "/api/embed"

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class OllamaClient:
    """Async Ollama client.

    Parameters
    ----------
    host:
        Server root URL.  Ignored when *transport* is given.
    timeout:
        Request timeout in seconds for the default ``HttpTransport``.
    transport:
        Optional transport; anything implementing ``Transport``.
    """

    def __init__(
        self,
        host: str = "http://127.0.0.1:11434",
        timeout: float = 300,
        headers: dict[str, str] | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.host = host
        self._transport: Transport = transport or HttpTransport(
            host, timeout=timeout, headers=headers,
        )

    @classmethod
    def from_config(
        cls, config: ClientConfig, transport: Transport | None = None,
    ) -> OllamaClient:
        return cls(
            transport=transport or HttpTransport(
                config.host,
                timeout=config.timeout,
                connect_timeout=config.connect_timeout,
                headers=config.headers,
            ),
            host=config.host,
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _request_one(
        self, path: str, payload: dict[str, Any], shape: type[ResponseT],
    ) -> ResponseT:
        """Send a non-streaming request and decode the single reply."""
        body = bytearray()
        async for chunk in self._transport.send(path, payload):
            body.extend(chunk)
        if not body.strip():
            raise DecodeError(f"Empty response body from {path}")
        return decode_frame(bytes(body), shape)

    def _request_stream(
        self,
        path: str,
        payload: dict[str, Any],
        shape: type[ResponseT],
        *,
        skip_malformed: bool,
        abort: AbortSignal | None,
    ) -> AsyncIterator[ResponseT]:
        frames = iter_frames(self._transport.send(path, payload))
        return decode_frames(frames, shape, skip_malformed=skip_malformed, abort=abort)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a chat request and return the complete reply."""
        _logger.debug(
            "Chat request to %s: %d messages, %d tools",
            request.model, len(request.messages), len(request.tools),
        )
        return await self._request_one(
            _CHAT_PATH, request.to_payload(stream=False), ChatResponse,
        )

    async def chat_stream(
        self, request: ChatRequest, abort: AbortSignal | None = None,
    ) -> AsyncIterator[ChatResponse]:
        """Stream partial chat responses; the last one has ``done=True``."""
        _logger.debug(
            "Chat stream to %s: %d messages, %d tools",
            request.model, len(request.messages), len(request.tools),
        )
        async for response in self._request_stream(
            _CHAT_PATH, request.to_payload(stream=True), ChatResponse,
            skip_malformed=False, abort=abort,
        ):
            yield response

    async def chat_with_history(
        self, history: HistoryLike, request: ChatRequest,
    ) -> ChatResponse:
        """Chat with *history* as context.

        The request is sent with the history plus ``request.messages``.  Only
        after a successful reply are those messages and the reply pushed; a
        failed call leaves *history* untouched.
        """
        new_messages = list(request.messages)
        full = await preview_messages(history, new_messages)
        response = await self.chat(request.with_messages(full))
        await commit_messages(history, [*new_messages, response.message])
        return response

    async def chat_stream_with_history(
        self,
        history: HistoryLike,
        request: ChatRequest,
        abort: AbortSignal | None = None,
    ) -> AsyncIterator[ChatResponse]:
        """Streaming form of ``chat_with_history``.

        The new messages and the assembled reply are committed when the
        terminal frame arrives; an abandoned stream commits nothing.  A
        stream that ends before its terminal frame raises ``DecodeError``.
        """
        new_messages = list(request.messages)
        full = await preview_messages(history, new_messages)
        aggregator = StreamAggregator(history, staged=new_messages)
        async for response in aggregator.aggregate(
            self.chat_stream(request.with_messages(full), abort=abort),
        ):
            yield response

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Single-prompt completion."""
        _logger.debug("Generate request to %s", request.model)
        return await self._request_one(
            _GENERATE_PATH, request.to_payload(stream=False), GenerationResponse,
        )

    async def generate_stream(
        self, request: GenerationRequest, abort: AbortSignal | None = None,
    ) -> AsyncIterator[GenerationResponse]:
        """Streaming completion.  Malformed frames are logged and skipped."""
        _logger.debug("Generate stream to %s", request.model)
        async for response in self._request_stream(
            _GENERATE_PATH, request.to_payload(stream=True), GenerationResponse,
            skip_malformed=True, abort=abort,
        ):
            yield response

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    async def embed(self, request: EmbeddingsRequest) -> EmbeddingsResponse:
        """Embed one or more texts; vectors come back in input order."""
        count = 1 if isinstance(request.input, str) else len(request.input)
        _logger.debug("Embed request to %s: %d inputs", request.model, count)
        response = await self._request_one(
            _EMBED_PATH, request.to_payload(), EmbeddingsResponse,
        )
        if len(response.embeddings) != count:
            raise DecodeError(
                f"Expected {count} embeddings from {_EMBED_PATH}, got {len(response.embeddings)}"
            )
        return response

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()

    async def __aenter__(self) -> OllamaClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
