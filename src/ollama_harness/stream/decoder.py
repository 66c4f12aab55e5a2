"""Frame decoding with a server-error envelope fallback.

A frame is first validated against the response shape the caller expects.
If that fails, it is tried as the generic ``{"error": "..."}`` envelope, so a
structured server problem surfaces as ``ServerError`` while garbage surfaces as
``DecodeError``.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator, TypeVar

from pydantic import BaseModel, ValidationError

from ollama_harness.errors import DecodeError, ServerError, StreamAborted
from ollama_harness.types import ServerErrorEnvelope

_logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

# Frames longer than this are clipped in log lines and error messages
_PREVIEW_BYTES = 200


class AbortSignal:
    """Cooperative cancellation flag shared between a caller and a stream.

    The stream checks it once per received frame.
    """

    def __init__(self) -> None:
        self._aborted = False

    def abort(self) -> None:
        self._aborted = True

    def reset(self) -> None:
        self._aborted = False

    @property
    def aborted(self) -> bool:
        return self._aborted


def _preview(frame: bytes) -> str:
    text = frame[:_PREVIEW_BYTES].decode("utf-8", errors="replace")
    if len(frame) > _PREVIEW_BYTES:
        text += "..."
    return text


def decode_frame(frame: bytes, shape: type[ResponseT]) -> ResponseT:
    """Decode one frame as *shape*.

    Raises
    ------
    ServerError
        The frame is a server error envelope.
    DecodeError
        The frame is neither *shape* nor an error envelope.  The original
        validation error is chained as ``__cause__``.
    """
    try:
        return shape.model_validate_json(frame)
    except ValidationError as exc:
        try:
            envelope = ServerErrorEnvelope.model_validate_json(frame)
        except ValidationError:
            raise DecodeError(
                f"Could not decode frame as {shape.__name__}: {_preview(frame)!r}",
                frame=frame,
            ) from exc
    raise ServerError(envelope.message)


async def decode_frames(
    frames: AsyncIterable[bytes],
    shape: type[ResponseT],
    *,
    skip_malformed: bool = False,
    abort: AbortSignal | None = None,
) -> AsyncIterator[ResponseT]:
    """Decode a frame stream lazily.

    Parameters
    ----------
    frames:
        Frames from ``iter_frames``.
    shape:
        Target response model.
    skip_malformed:
        If True, a ``DecodeError`` is logged and the frame dropped instead of
        ending the stream.  ``ServerError`` always ends the stream.
    abort:
        Checked once per received frame; raises ``StreamAborted`` when set.
    """
    async for frame in frames:
        if abort is not None and abort.aborted:
            raise StreamAborted("Stream aborted by caller")
        if not frame.strip():
            continue
        try:
            response = decode_frame(frame, shape)
        except DecodeError as exc:
            if not skip_malformed:
                raise
            _logger.warning("Skipping malformed frame: %s", exc)
            continue
        yield response
