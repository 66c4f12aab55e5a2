"""HTTP transport: POST a JSON body, stream back raw byte chunks.

The transport knows nothing about frames.  A non-2xx status turns the whole
body into a plain-text ``TransportError``; it is never frame-decoded.
Retries are left to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Protocol

import httpx

from ollama_harness.errors import TransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Anything that can send a request body and stream the reply bytes."""

    def send(self, path: str, payload: dict[str, Any]) -> AsyncIterator[bytes]:
        """Yield response body chunks in order; fail with ``TransportError``."""
        ...

    async def close(self) -> None:
        ...


class HttpTransport:
    """``httpx.AsyncClient`` based transport.

    Parameters
    ----------
    base_url:
        Server root, e.g. ``http://127.0.0.1:11434``.
    timeout:
        Overall request timeout in seconds; ``read`` applies per chunk.
    client:
        Optional pre-built ``httpx.AsyncClient`` (tests pass one with a
        ``MockTransport``).
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:11434",
        timeout: float = 300,
        connect_timeout: float = 30,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
        )

    async def send(self, path: str, payload: dict[str, Any]) -> AsyncIterator[bytes]:
        try:
            async with self._client.stream("POST", path, json=payload) as resp:
                if resp.is_error:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    _logger.warning(
                        "Server returned %d for %s: %s", resp.status_code, path, body[:200],
                    )
                    raise TransportError(
                        body or f"HTTP {resp.status_code}",
                        status_code=resp.status_code,
                        body=body,
                    )
                async for chunk in resp.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
