"""Client, requests and transport for ollama-harness."""

from ollama_harness.llm.client import OllamaClient
from ollama_harness.llm.options import GenerationOptions, ResponseFormat, validate_think
from ollama_harness.llm.requests import ChatRequest, EmbeddingsRequest, GenerationRequest
from ollama_harness.llm.transport import HttpTransport, Transport

__all__ = [
    "ChatRequest",
    "EmbeddingsRequest",
    "GenerationOptions",
    "GenerationRequest",
    "HttpTransport",
    "OllamaClient",
    "ResponseFormat",
    "Transport",
    "validate_think",
]
