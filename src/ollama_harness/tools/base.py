"""Async Tool abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from ollama_harness.tools.schema import schema_for
from ollama_harness.types import ToolDescriptor


class NoParameters(BaseModel):
    """Parameter model for tools that take no arguments."""


class Tool(ABC):
    """Base class for all tools.

    Subclasses must set ``name``, ``description`` and ``parameters`` (a
    pydantic model describing the arguments) as class attributes and
    implement the async ``call()`` method.

    ``call()`` returns text for the model.  Failures the model could recover
    from should be returned as text too; raising aborts the whole chat turn.
    """

    name: str
    description: str
    parameters: type[BaseModel] = NoParameters

    @abstractmethod
    async def call(self, params: BaseModel) -> str:
        """Run the tool with validated *params*."""

    def descriptor(self) -> ToolDescriptor:
        """Advertised name, description and parameter schema."""
        return ToolDescriptor(
            name=self.name,
            description=self.description,
            parameters=schema_for(self.parameters),
        )

    def to_compact_description(self) -> str:
        """One-line description, e.g. for a system prompt or a CLI listing."""
        fields = self.parameters.model_fields
        params = ", ".join(
            name + ("" if field.is_required() else "?")
            for name, field in fields.items()
        )
        return f"{self.name}({params}) - {self.description}"
