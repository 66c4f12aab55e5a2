"""Streaming response pipeline: bytes -> frames -> responses -> history."""

from ollama_harness.stream.aggregator import GenerationAggregator, StreamAggregator
from ollama_harness.stream.decoder import AbortSignal, decode_frame, decode_frames
from ollama_harness.stream.segmenter import FrameSegmenter, iter_frames

__all__ = [
    "AbortSignal",
    "FrameSegmenter",
    "GenerationAggregator",
    "StreamAggregator",
    "decode_frame",
    "decode_frames",
    "iter_frames",
]
