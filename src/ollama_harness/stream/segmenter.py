"""Incremental byte-to-frame segmentation for line-delimited JSON streams.

The server writes one JSON object per line, but the transport may split or
merge lines arbitrarily.  ``FrameSegmenter`` buffers bytes until a raw ``\\n``
arrives and hands back the complete frames.  Escaped newlines inside JSON
strings are the two characters ``\\`` ``n`` and never split a frame.
"""

from __future__ import annotations

import logging
from typing import AsyncIterable, AsyncIterator

_logger = logging.getLogger(__name__)

_CR = 0x0D


class FrameSegmenter:
    """Split a chunked byte stream into ``\\n`` / ``\\r\\n`` delimited frames.

    Usage::

        segmenter = FrameSegmenter()
        for chunk in chunks:
            for frame in segmenter.feed(chunk):
                handle(frame)
        rest = segmenter.finish()
        if rest is not None:
            handle(rest)
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[bytes]:
        """Append *chunk* and return every frame it completes, in order."""
        buf = self._buffer
        buf.extend(chunk)

        frames: list[bytes] = []
        start = 0
        while True:
            pos = buf.find(b"\n", start)
            if pos < 0:
                break
            end = pos
            # A CR left over from an earlier chunk is still in the buffer
            if end > start and buf[end - 1] == _CR:
                end -= 1
            frames.append(bytes(buf[start:end]))
            start = pos + 1

        if start:
            del buf[:start]
        return frames

    def finish(self) -> bytes | None:
        """Flush the unterminated tail at end of stream.

        Returns ``None`` when nothing is buffered.
        """
        if not self._buffer:
            return None
        rest = bytes(self._buffer)
        self._buffer.clear()
        return rest


async def iter_frames(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """Lazily turn an async byte-chunk stream into frames.

    An exception raised by *chunks* propagates after every frame completed
    before it has been yielded; buffered partial bytes are dropped with it.
    """
    segmenter = FrameSegmenter()
    async for chunk in chunks:
        if not chunk:
            continue
        for frame in segmenter.feed(chunk):
            yield frame
    rest = segmenter.finish()
    if rest is not None:
        _logger.debug("Flushing %d unterminated bytes as final frame", len(rest))
        yield rest
