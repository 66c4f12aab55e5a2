"""Built-in tools shipped with ollama-harness."""

from __future__ import annotations

from ollama_harness.tools.builtin.calculator import Calculator
from ollama_harness.tools.registry import ToolRegistry

__all__ = ["Calculator", "register_builtin_tools"]


def register_builtin_tools(registry: ToolRegistry) -> None:
    """Register every built-in tool with *registry*."""
    registry.register(Calculator())
