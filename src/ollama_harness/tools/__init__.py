"""Tool system for ollama-harness."""

from ollama_harness.tools.base import NoParameters, Tool
from ollama_harness.tools.registry import ToolRegistry
from ollama_harness.tools.schema import inline_refs, schema_for

__all__ = ["NoParameters", "Tool", "ToolRegistry", "inline_refs", "schema_for"]
