"""Exception hierarchy for ollama-harness.

Every failure that aborts a chat or generation call derives from
``HarnessError`` so callers can catch the whole family at once.
"""

from __future__ import annotations


class HarnessError(Exception):
    """Base class for all ollama-harness errors."""


# ---------------------------------------------------------------------------
# Wire errors
# ---------------------------------------------------------------------------

class TransportError(HarnessError):
    """Network failure or non-2xx status from the server.

    For status failures ``body`` holds the response body as plain text.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class DecodeError(HarnessError):
    """A frame could not be decoded as the expected response shape."""

    def __init__(self, message: str, frame: bytes = b"") -> None:
        super().__init__(message)
        self.frame = frame


class ServerError(HarnessError):
    """The server reported a structured ``{"error": ...}`` envelope."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StreamAborted(HarnessError):
    """The consumer set the abort signal while a stream was in flight."""


# ---------------------------------------------------------------------------
# Tool errors
# ---------------------------------------------------------------------------

class ToolCallError(HarnessError):
    """Base class for tool dispatch failures."""

    def __init__(self, message: str, tool_name: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class UnknownTool(ToolCallError):
    """The model asked for a tool name that is not registered."""

    def __init__(self, tool_name: str, available: list[str] | None = None) -> None:
        self.available = list(available or [])
        listing = ", ".join(self.available) or "(none)"
        super().__init__(
            f"Unknown tool: {tool_name}. Available: {listing}", tool_name,
        )


class InvalidArguments(ToolCallError):
    """Tool arguments from the model do not fit the tool's parameter model."""

    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(
            f"Invalid arguments for tool '{tool_name}': {detail}", tool_name,
        )
        self.detail = detail


class ToolExecutionFailed(ToolCallError):
    """The tool raised while running; ``cause`` is the original exception."""

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        super().__init__(
            f"Tool '{tool_name}' execution failed: {type(cause).__name__}: {cause}",
            tool_name,
        )
        self.cause = cause


class ToolRoundLimitExceeded(HarnessError):
    """The server kept requesting tools past the configured round limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Tool-call round limit of {limit} exceeded")
        self.limit = limit
