"""Tool registry with dispatch and plugin discovery."""

from __future__ import annotations

import json
import logging
from importlib.metadata import entry_points
from typing import Any

from pydantic import ValidationError

from ollama_harness.errors import InvalidArguments, ToolExecutionFailed, UnknownTool
from ollama_harness.tools.base import Tool
from ollama_harness.types import ToolCall, ToolDescriptor

_logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "ollama_harness.tools"


def _normalize_arguments(tool_name: str, arguments: Any) -> Any:
    """Unwrap argument payloads the model sometimes sends in other shapes.

    Accepted: a plain object, a JSON string of one, the call shape
    ``{"name": ..., "arguments": {...}}`` and the descriptor shape
    ``{"function": {"parameters": {...}}}``.
    """
    if arguments is None:
        return {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments) if arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise InvalidArguments(tool_name, f"arguments are not valid JSON: {e}") from e
    if isinstance(arguments, dict):
        if set(arguments) == {"name", "arguments"}:
            return _normalize_arguments(tool_name, arguments["arguments"])
        function = arguments.get("function")
        if isinstance(function, dict) and isinstance(function.get("parameters"), dict):
            return function["parameters"]
    return arguments


class ToolRegistry:
    """Registry of available tools, keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool instance.  A later tool with the same name wins."""
        if tool.name in self._tools:
            _logger.debug("Replacing registered tool: %s", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        """Look up a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """Return all registered tools."""
        return list(self._tools.values())

    def tool_names(self) -> list[str]:
        """Return list of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def describe_all(self) -> list[ToolDescriptor]:
        """One descriptor per registered tool, for the request's ``tools`` field."""
        return [t.descriptor() for t in self._tools.values()]

    async def dispatch(self, call: ToolCall) -> str:
        """Validate the arguments of *call* and run the named tool.

        Raises
        ------
        UnknownTool
            No tool with that name is registered.
        InvalidArguments
            The arguments do not fit the tool's parameter model.
        ToolExecutionFailed
            The tool raised; the original exception is ``cause``.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            raise UnknownTool(call.name, self.tool_names())

        arguments = _normalize_arguments(call.name, call.arguments)
        try:
            params = tool.parameters.model_validate(arguments)
        except ValidationError as e:
            raise InvalidArguments(call.name, str(e)) from e

        _logger.debug("Calling tool %s with %s", call.name, arguments)
        try:
            result = await tool.call(params)
        except Exception as e:
            raise ToolExecutionFailed(call.name, e) from e

        if not isinstance(result, str):
            result = str(result)
        _logger.debug("Tool %s returned %d chars", call.name, len(result))
        return result

    def discover(self) -> None:
        """Load tools from entry_points group ``ollama_harness.tools``.

        Each entry point should be a callable that returns a Tool instance
        or a Tool subclass (which will be instantiated).
        """
        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                obj = ep.load()
                if isinstance(obj, type) and issubclass(obj, Tool):
                    tool = obj()
                elif isinstance(obj, Tool):
                    tool = obj
                elif callable(obj):
                    tool = obj()
                else:
                    _logger.warning(
                        "Entry point %s did not return a Tool: %s", ep.name, type(obj)
                    )
                    continue
                self.register(tool)
                _logger.info("Discovered plugin tool: %s", tool.name)
            except Exception:
                _logger.exception("Failed to load tool plugin: %s", ep.name)
