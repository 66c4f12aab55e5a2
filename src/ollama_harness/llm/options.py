"""Generation options, response format and thinking controls."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Union

from pydantic import BaseModel

from ollama_harness.tools.schema import inline_refs, schema_for

ThinkSetting = Union[bool, str]

_THINK_LEVELS = ("low", "medium", "high")


def validate_think(think: ThinkSetting | None) -> ThinkSetting | None:
    """Accept ``True``/``False`` or one of ``"low"``, ``"medium"``, ``"high"``."""
    if think is None or isinstance(think, bool):
        return think
    if isinstance(think, str) and think in _THINK_LEVELS:
        return think
    raise ValueError(
        f"think must be a boolean or one of {', '.join(_THINK_LEVELS)} (got {think!r})"
    )


@dataclass
class GenerationOptions:
    """Model options sent in the request's ``options`` object.

    Only the options that were set are serialized; unset ones fall back to
    the model's own defaults on the server.
    """

    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    min_p: float | None = None
    num_ctx: int | None = None
    num_predict: int | None = None
    num_keep: int | None = None
    repeat_penalty: float | None = None
    repeat_last_n: int | None = None
    seed: int | None = None
    stop: list[str] | None = None
    tfs_z: float | None = None
    mirostat: int | None = None
    mirostat_eta: float | None = None
    mirostat_tau: float | None = None
    num_gpu: int | None = None
    num_thread: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> GenerationOptions:
        """Build from a plain dict, rejecting unknown option names."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"Unknown generation options: {', '.join(unknown)}")
        return cls(**raw)


class ResponseFormat:
    """Output constraint: free-form JSON or a JSON schema.

    Usage::

        ResponseFormat.json()
        ResponseFormat.from_model(Weather)
        ResponseFormat.from_schema({"type": "object", ...})
    """

    def __init__(self, schema: dict[str, Any] | None = None) -> None:
        self._schema = schema

    @classmethod
    def json(cls) -> ResponseFormat:
        return cls()

    @classmethod
    def from_schema(cls, schema: dict[str, Any]) -> ResponseFormat:
        return cls(inline_refs(schema))

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> ResponseFormat:
        return cls(schema_for(model))

    @property
    def schema(self) -> dict[str, Any] | None:
        return self._schema

    def to_wire(self) -> str | dict[str, Any]:
        if self._schema is None:
            return "json"
        return self._schema

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ResponseFormat) and other._schema == self._schema

    def __repr__(self) -> str:
        return "ResponseFormat.json()" if self._schema is None else "ResponseFormat(schema=...)"
