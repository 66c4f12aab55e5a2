"""Fakes and frame builders shared by the test modules."""

from __future__ import annotations

import copy
import json
from typing import Any, AsyncIterator


class ScriptedTransport:
    """In-memory ``Transport`` replaying canned replies.

    Each ``send()`` consumes the next reply: a list of byte chunks, or an
    exception to raise.  Sent requests are recorded in ``requests``.
    """

    def __init__(self, replies: list[Any]) -> None:
        self.replies = list(replies)
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    async def send(self, path: str, payload: dict[str, Any]) -> AsyncIterator[bytes]:
        self.requests.append((path, copy.deepcopy(payload)))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        for chunk in reply:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    async def close(self) -> None:
        self.closed = True

    @property
    def payloads(self) -> list[dict[str, Any]]:
        return [p for _, p in self.requests]


def chat_frame(
    content: str = "",
    done: bool = False,
    tool_calls: list[dict[str, Any]] | None = None,
    thinking: str | None = None,
    model: str = "test-model",
) -> bytes:
    """One serialized ``/api/chat`` frame, newline terminated."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    if thinking:
        message["thinking"] = thinking
    data: dict[str, Any] = {
        "model": model,
        "created_at": "2024-01-01T00:00:00Z",
        "message": message,
        "done": done,
    }
    if done:
        data.update({"done_reason": "stop", "eval_count": 5, "prompt_eval_count": 7})
    return json.dumps(data).encode() + b"\n"


def generate_frame(
    response: str = "",
    done: bool = False,
    context: list[int] | None = None,
    model: str = "test-model",
) -> bytes:
    data: dict[str, Any] = {
        "model": model,
        "created_at": "2024-01-01T00:00:00Z",
        "response": response,
        "done": done,
    }
    if context is not None:
        data["context"] = context
    return json.dumps(data).encode() + b"\n"


def tool_call(name: str, **arguments: Any) -> dict[str, Any]:
    return {"function": {"name": name, "arguments": arguments}}


def stream_reply(*parts: str, tool_calls: list[dict[str, Any]] | None = None) -> list[bytes]:
    """Chunks of a streamed reply: one frame per part, then the done frame."""
    frames = [chat_frame(p) for p in parts]
    if tool_calls:
        frames.append(chat_frame(tool_calls=tool_calls))
    frames.append(chat_frame(done=True))
    return frames


def single_reply(content: str = "", tool_calls: list[dict[str, Any]] | None = None) -> list[bytes]:
    """Body of a non-streamed chat reply."""
    return [chat_frame(content, done=True, tool_calls=tool_calls)]
