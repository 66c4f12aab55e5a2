"""Tests for the Coordinator tool loop and format gating."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from helpers import chat_frame, single_reply, stream_reply, tool_call
from ollama_harness.config import ClientConfig
from ollama_harness.core.coordinator import Coordinator
from ollama_harness.errors import (
    DecodeError,
    StreamAborted,
    ToolExecutionFailed,
    ToolRoundLimitExceeded,
    TransportError,
    UnknownTool,
)
from ollama_harness.history import ConversationHistory
from ollama_harness.llm.client import OllamaClient
from ollama_harness.llm.options import ResponseFormat
from ollama_harness.stream.decoder import AbortSignal
from ollama_harness.tools.base import Tool
from ollama_harness.tools.builtin import register_builtin_tools
from ollama_harness.tools.registry import ToolRegistry
from ollama_harness.types import Message, MessageRole


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class LookupParams(BaseModel):
    city: str


class WeatherTool(Tool):
    """Records every call it receives."""

    name = "weather"
    description = "Current weather for a city."
    parameters = LookupParams

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def call(self, params: LookupParams) -> str:
        self.calls.append(params.city)
        return f"Sunny in {params.city}"


class BrokenTool(Tool):
    name = "broken"
    description = "Always raises."

    async def call(self, params: BaseModel) -> str:
        raise OSError("disk on fire")


class Answer(BaseModel):
    summary: str


def _coordinator(transport, *tools: Tool, **kwargs) -> Coordinator:
    registry = ToolRegistry()
    for tool in tools:
        registry.register(tool)
    return Coordinator(OllamaClient(transport=transport), "test-model", tools=registry, **kwargs)


def _roles(history: ConversationHistory) -> list[str]:
    return [m.role.value for m in history]


# ---------------------------------------------------------------------------
# chat()
# ---------------------------------------------------------------------------

class TestCoordinatorChat:
    async def test_plain_answer(self, scripted):
        transport = scripted(single_reply("Hello!"))
        coordinator = _coordinator(transport)

        response = await coordinator.chat([Message.user("hi")])

        assert response.message.content == "Hello!"
        assert _roles(coordinator.history) == ["user", "assistant"]
        assert "tools" not in transport.payloads[0]

    async def test_two_tool_rounds_then_answer(self, scripted):
        weather = WeatherTool()
        transport = scripted(
            single_reply(tool_calls=[tool_call("weather", city="Paris")]),
            single_reply(tool_calls=[tool_call("weather", city="Rome")]),
            single_reply("Paris and Rome are both sunny."),
        )
        coordinator = _coordinator(transport, weather)

        response = await coordinator.chat([Message.user("Weather in Paris and Rome?")])

        assert response.message.content == "Paris and Rome are both sunny."
        assert not response.message.tool_calls
        assert weather.calls == ["Paris", "Rome"]
        assert len(transport.requests) == 3
        assert _roles(coordinator.history) == [
            "user", "assistant", "tool", "assistant", "tool", "assistant",
        ]
        tool_messages = [m for m in coordinator.history if m.role == MessageRole.TOOL]
        assert [m.content for m in tool_messages] == ["Sunny in Paris", "Sunny in Rome"]
        assert all(m.tool_name == "weather" for m in tool_messages)

        # Each follow-up request carries the whole conversation so far
        second = transport.payloads[1]["messages"]
        assert [m["role"] for m in second] == ["user", "assistant", "tool"]
        assert second[-1]["content"] == "Sunny in Paris"

    async def test_several_calls_in_one_reply_run_in_order(self, scripted):
        weather = WeatherTool()
        transport = scripted(
            single_reply(tool_calls=[
                tool_call("weather", city="Oslo"), tool_call("weather", city="Lima"),
            ]),
            single_reply("done"),
        )
        coordinator = _coordinator(transport, weather)
        await coordinator.chat([Message.user("?")])
        assert weather.calls == ["Oslo", "Lima"]
        assert _roles(coordinator.history) == ["user", "assistant", "tool", "tool", "assistant"]

    async def test_tools_advertised(self, scripted):
        transport = scripted(single_reply("ok"))
        coordinator = _coordinator(transport, WeatherTool())
        await coordinator.chat([Message.user("hi")])
        tools = transport.payloads[0]["tools"]
        assert [t["function"]["name"] for t in tools] == ["weather"]
        assert tools[0]["function"]["parameters"]["required"] == ["city"]

    async def test_calculator_end_to_end(self, scripted):
        registry = ToolRegistry()
        register_builtin_tools(registry)
        transport = scripted(
            single_reply(tool_calls=[tool_call("calculator", expression="6 * 7")]),
            single_reply("The answer is 42."),
        )
        coordinator = Coordinator(OllamaClient(transport=transport), "m", tools=registry)
        await coordinator.chat([Message.user("What is 6 times 7?")])
        tool_msg = [m for m in coordinator.history if m.role == MessageRole.TOOL][0]
        assert tool_msg.content == "42"


class TestFormatGating:
    async def test_format_sent_without_tools(self, scripted):
        transport = scripted(single_reply('{"summary": "x"}'))
        coordinator = _coordinator(transport, format=ResponseFormat.from_model(Answer))
        await coordinator.chat([Message.user("summarize")])
        assert transport.payloads[0]["format"]["properties"]["summary"]["type"] == "string"

    async def test_format_withheld_until_tool_result(self, scripted):
        transport = scripted(
            single_reply(tool_calls=[tool_call("weather", city="Paris")]),
            single_reply('{"summary": "sunny"}'),
        )
        coordinator = _coordinator(transport, WeatherTool(), format=ResponseFormat.json())

        await coordinator.chat([Message.user("weather?")])

        assert "format" not in transport.payloads[0]
        assert transport.payloads[1]["format"] == "json"

    async def test_format_withheld_when_tools_not_called(self, scripted):
        transport = scripted(single_reply("plain"))
        coordinator = _coordinator(transport, WeatherTool(), format=ResponseFormat.json())
        await coordinator.chat([Message.user("hi")])
        assert "format" not in transport.payloads[0]


class TestToolFailures:
    async def test_unknown_tool_aborts_turn(self, scripted):
        transport = scripted(single_reply(tool_calls=[tool_call("teleport", to="Mars")]))
        coordinator = _coordinator(transport, WeatherTool())

        with pytest.raises(UnknownTool):
            await coordinator.chat([Message.user("go")])

        # The round-trip succeeded, so its messages are kept; no tool result is added
        assert _roles(coordinator.history) == ["user", "assistant"]
        assert len(transport.requests) == 1

    async def test_tool_exception_aborts_turn(self, scripted):
        transport = scripted(single_reply(tool_calls=[tool_call("broken")]))
        coordinator = _coordinator(transport, BrokenTool())
        with pytest.raises(ToolExecutionFailed) as info:
            await coordinator.chat([Message.user("go")])
        assert isinstance(info.value.cause, OSError)

    async def test_transport_failure_leaves_history(self, scripted):
        transport = scripted(TransportError("down"))
        coordinator = _coordinator(transport)
        with pytest.raises(TransportError):
            await coordinator.chat([Message.user("hi")])
        assert len(coordinator.history) == 0

    async def test_round_limit(self, scripted):
        weather = WeatherTool()
        transport = scripted(
            single_reply(tool_calls=[tool_call("weather", city="A")]),
            single_reply(tool_calls=[tool_call("weather", city="B")]),
        )
        coordinator = _coordinator(transport, weather, max_tool_rounds=1)

        with pytest.raises(ToolRoundLimitExceeded) as info:
            await coordinator.chat([Message.user("loop")])

        assert info.value.limit == 1
        assert weather.calls == ["A"]

    async def test_unbounded_rounds(self, scripted):
        weather = WeatherTool()
        replies = [
            single_reply(tool_calls=[tool_call("weather", city=str(i))]) for i in range(12)
        ]
        transport = scripted(*replies, single_reply("finally"))
        coordinator = _coordinator(transport, weather, max_tool_rounds=None)
        response = await coordinator.chat([Message.user("loop")])
        assert response.message.content == "finally"
        assert len(weather.calls) == 12


# ---------------------------------------------------------------------------
# chat_stream()
# ---------------------------------------------------------------------------

class TestCoordinatorStream:
    async def test_streams_across_tool_round(self, scripted):
        weather = WeatherTool()
        transport = scripted(
            stream_reply(tool_calls=[tool_call("weather", city="Berlin")]),
            stream_reply("It is ", "sunny."),
        )
        coordinator = _coordinator(transport, weather, format=ResponseFormat.json())

        frames = [r async for r in coordinator.chat_stream([Message.user("weather?")])]

        assert weather.calls == ["Berlin"]
        assert sum(1 for f in frames if f.done) == 2
        text = "".join(f.message.content for f in frames[-3:])
        assert text == "It is sunny."
        assert _roles(coordinator.history) == ["user", "assistant", "tool", "assistant"]
        assert coordinator.history.last().content == "It is sunny."
        assert "format" not in transport.payloads[0]
        assert transport.payloads[1]["format"] == "json"
        assert all(p["stream"] is True for p in transport.payloads)

    async def test_stream_plain_answer(self, scripted):
        transport = scripted(stream_reply("a", "b"))
        coordinator = _coordinator(transport)
        frames = [r async for r in coordinator.chat_stream([Message.user("hi")])]
        assert len(frames) == 3
        assert coordinator.history.last().content == "ab"

    async def test_stream_cut_off_before_terminal_frame(self, scripted):
        transport = scripted([chat_frame("partial")])
        coordinator = _coordinator(transport)
        seen = []
        with pytest.raises(DecodeError, match="terminal frame"):
            async for r in coordinator.chat_stream([Message.user("hi")]):
                seen.append(r)
        assert len(seen) == 1
        assert len(coordinator.history) == 0

    async def test_stream_abort(self, scripted):
        transport = scripted(stream_reply("a", "b", "c"))
        coordinator = _coordinator(transport)
        signal = AbortSignal()
        seen = []
        with pytest.raises(StreamAborted):
            async for r in coordinator.chat_stream([Message.user("hi")], abort=signal):
                seen.append(r)
                signal.abort()
        assert len(seen) == 1
        assert len(coordinator.history) == 0

    async def test_stream_abort_during_tool_followup(self, scripted):
        weather = WeatherTool()
        transport = scripted(
            stream_reply(tool_calls=[tool_call("weather", city="Oslo")]),
            stream_reply("It ", "snows."),
        )
        coordinator = _coordinator(transport, weather)
        signal = AbortSignal()
        with pytest.raises(StreamAborted):
            async for r in coordinator.chat_stream([Message.user("?")], abort=signal):
                if r.message.content:
                    signal.abort()
        assert weather.calls == ["Oslo"]
        assert _roles(coordinator.history) == ["user", "assistant", "tool"]

    async def test_stream_round_limit(self, scripted):
        transport = scripted(
            stream_reply(tool_calls=[tool_call("weather", city="A")]),
            stream_reply(tool_calls=[tool_call("weather", city="B")]),
        )
        coordinator = _coordinator(transport, WeatherTool(), max_tool_rounds=1)
        with pytest.raises(ToolRoundLimitExceeded):
            async for _ in coordinator.chat_stream([Message.user("loop")]):
                pass


class TestFromConfig:
    async def test_settings_applied(self, scripted):
        transport = scripted(single_reply("ok"))
        config = ClientConfig(
            model="qwen3", history_capacity=4, max_tool_rounds=2,
            options={"temperature": 0.1}, think="low",
        )
        coordinator = Coordinator.from_config(OllamaClient(transport=transport), config)
        await coordinator.chat([Message.user("hi")])

        payload = transport.payloads[0]
        assert payload["model"] == "qwen3"
        assert payload["options"] == {"temperature": 0.1}
        assert payload["think"] == "low"
        assert coordinator.history.capacity == 4
