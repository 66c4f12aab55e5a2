"""Request objects for ``/api/chat``, ``/api/generate`` and ``/api/embed``."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence, Union

from ollama_harness.llm.options import (
    GenerationOptions,
    ResponseFormat,
    ThinkSetting,
    validate_think,
)
from ollama_harness.types import Message, ToolDescriptor

# "5m", 300, -1 (keep loaded), 0 (unload after the request)
KeepAlive = Union[str, int]


def _common_fields(
    payload: dict[str, Any],
    options: GenerationOptions | None,
    format: ResponseFormat | None,
    think: ThinkSetting | None,
    keep_alive: KeepAlive | None,
    template: str | None,
) -> None:
    if options is not None:
        opts = options.to_dict()
        if opts:
            payload["options"] = opts
    if format is not None:
        payload["format"] = format.to_wire()
    if think is not None:
        payload["think"] = validate_think(think)
    if keep_alive is not None:
        payload["keep_alive"] = keep_alive
    if template is not None:
        payload["template"] = template


@dataclass
class ChatRequest:
    """Everything needed for one ``/api/chat`` round-trip."""

    model: str
    messages: Sequence[Message] = field(default_factory=list)
    tools: Sequence[ToolDescriptor] = field(default_factory=list)
    options: GenerationOptions | None = None
    format: ResponseFormat | None = None
    think: ThinkSetting | None = None
    keep_alive: KeepAlive | None = None
    template: str | None = None

    def with_messages(self, messages: Sequence[Message]) -> ChatRequest:
        """Copy of this request carrying *messages* instead."""
        return ChatRequest(
            model=self.model,
            messages=list(messages),
            tools=list(self.tools),
            options=self.options,
            format=self.format,
            think=self.think,
            keep_alive=self.keep_alive,
            template=self.template,
        )

    def to_payload(self, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_wire() for m in self.messages],
            "stream": stream,
        }
        if self.tools:
            payload["tools"] = [t.to_wire() for t in self.tools]
        _common_fields(
            payload, self.options, self.format, self.think,
            self.keep_alive, self.template,
        )
        return payload


@dataclass
class GenerationRequest:
    """A single-prompt ``/api/generate`` request."""

    model: str
    prompt: str
    suffix: str | None = None
    images: list[str] = field(default_factory=list)
    options: GenerationOptions | None = None
    system: str | None = None
    template: str | None = None
    raw: bool | None = None
    # Continuation token from a previous GenerationResponse
    context: list[int] | None = None
    format: ResponseFormat | None = None
    think: ThinkSetting | None = None
    keep_alive: KeepAlive | None = None

    def to_payload(self, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": self.prompt,
            "stream": stream,
        }
        if self.suffix is not None:
            payload["suffix"] = self.suffix
        if self.images:
            payload["images"] = list(self.images)
        if self.system is not None:
            payload["system"] = self.system
        if self.raw is not None:
            payload["raw"] = self.raw
        if self.context is not None:
            payload["context"] = list(self.context)
        _common_fields(
            payload, self.options, self.format, self.think,
            self.keep_alive, self.template,
        )
        return payload


@dataclass
class EmbeddingsRequest:
    """An ``/api/embed`` request for one text or a batch of texts."""

    model: str
    input: str | list[str]
    # Server default is to truncate inputs that exceed the context length
    truncate: bool | None = None
    options: GenerationOptions | None = None
    keep_alive: KeepAlive | None = None
    dimensions: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "input": self.input if isinstance(self.input, str) else list(self.input),
        }
        if self.truncate is not None:
            payload["truncate"] = self.truncate
        if self.dimensions is not None:
            payload["dimensions"] = self.dimensions
        _common_fields(payload, self.options, None, None, self.keep_alive, None)
        return payload
