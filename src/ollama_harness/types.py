"""Shared wire types for ollama-harness.

Responses are pydantic models so a frame can be validated against the shape
the caller expects; see ``ollama_harness.stream.decoder``.
"""

from __future__ import annotations

import base64
import enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

class MessageRole(str, enum.Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class ToolCallFunction(BaseModel):
    name: str
    # Some models send ``parameters`` instead of ``arguments``.
    arguments: Any = Field(
        default_factory=dict,
        validation_alias=AliasChoices("arguments", "parameters"),
    )


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    function: ToolCallFunction

    @classmethod
    def create(cls, name: str, arguments: Any = None) -> ToolCall:
        return cls(function=ToolCallFunction(name=name, arguments=arguments or {}))

    @property
    def name(self) -> str:
        return self.function.name

    @property
    def arguments(self) -> Any:
        return self.function.arguments


class Message(BaseModel):
    """One chat message.

    Messages are frozen: once stored in a history they are copied into
    outgoing requests but never modified.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    images: list[str] | None = None
    thinking: str | None = None
    tool_name: str | None = None

    @classmethod
    def user(cls, content: str, images: list[str] | None = None) -> Message:
        return cls(role=MessageRole.USER, content=content, images=images)

    @classmethod
    def assistant(cls, content: str, **kwargs: Any) -> Message:
        return cls(role=MessageRole.ASSISTANT, content=content, **kwargs)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def tool(cls, content: str, tool_name: str | None = None) -> Message:
        return cls(role=MessageRole.TOOL, content=content, tool_name=tool_name)

    def to_wire(self) -> dict[str, Any]:
        """Serialize for an outgoing request body."""
        data = self.model_dump(mode="json", exclude_none=True)
        if not data.get("tool_calls"):
            data.pop("tool_calls", None)
        return data


def encode_image(data: bytes) -> str:
    """Base64-encode raw image bytes for ``Message.images``."""
    return base64.b64encode(data).decode("ascii")


# ---------------------------------------------------------------------------
# Tool advertisement
# ---------------------------------------------------------------------------

class ToolDescriptor(BaseModel):
    """Advertised shape of a registered tool."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: dict[str, Any]

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class ChatResponse(BaseModel):
    """One frame of ``/api/chat`` output (or the whole non-streamed reply)."""

    model: str
    created_at: str = ""
    message: Message
    done: bool
    done_reason: str | None = None
    total_duration: int | None = None
    load_duration: int | None = None
    prompt_eval_count: int | None = None
    prompt_eval_duration: int | None = None
    eval_count: int | None = None
    eval_duration: int | None = None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.message.tool_calls) > 0


class GenerationResponse(BaseModel):
    """One frame of ``/api/generate`` output."""

    model: str
    created_at: str = ""
    response: str = ""
    done: bool
    done_reason: str | None = None
    # Continuation token: send back as ``GenerationRequest.context``.
    context: list[int] | None = None
    thinking: str | None = None
    total_duration: int | None = None
    load_duration: int | None = None
    prompt_eval_count: int | None = None
    prompt_eval_duration: int | None = None
    eval_count: int | None = None
    eval_duration: int | None = None


class EmbeddingsResponse(BaseModel):
    """Reply from ``/api/embed``: one vector per input, in input order."""

    model: str = ""
    embeddings: list[list[float]]
    total_duration: int | None = None
    load_duration: int | None = None
    prompt_eval_count: int | None = None


class ServerErrorEnvelope(BaseModel):
    """Generic ``{"error": "..."}`` body the server sends on failure."""

    message: str = Field(validation_alias="error")
