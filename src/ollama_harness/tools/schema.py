"""JSON schema generation for tool parameters and structured output.

The server does not resolve ``$ref`` pointers, so every ``$defs`` reference
pydantic emits is inlined.
"""

from __future__ import annotations

import copy
from typing import Any

from pydantic import BaseModel

_DEFS_PREFIX = "#/$defs/"


def inline_refs(schema: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *schema* with ``$defs`` references inlined.

    Raises ``ValueError`` for recursive definitions, which cannot be inlined.
    """
    schema = copy.deepcopy(schema)
    defs: dict[str, Any] = schema.pop("$defs", {})

    def resolve(node: Any, seen: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [resolve(item, seen) for item in node]
        if not isinstance(node, dict):
            return node
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(_DEFS_PREFIX):
            name = ref[len(_DEFS_PREFIX):]
            if name in seen:
                raise ValueError(f"Recursive schema definition cannot be inlined: {name}")
            if name not in defs:
                raise ValueError(f"Unresolvable schema reference: {ref}")
            target = resolve(defs[name], seen + (name,))
            siblings = {k: resolve(v, seen) for k, v in node.items() if k != "$ref"}
            return {**target, **siblings}
        return {k: resolve(v, seen) for k, v in node.items()}

    return resolve(schema, ())


def schema_for(model: type[BaseModel]) -> dict[str, Any]:
    """Self-contained JSON schema for a pydantic model."""
    return inline_refs(model.model_json_schema())
