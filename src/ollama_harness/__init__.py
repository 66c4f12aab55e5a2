"""ollama-harness: async streaming client and tool-calling coordinator for Ollama.

Public API:
    OllamaClient        chat / generate / embed, streaming and history-aware
    Coordinator         chat turns with the tool-call loop
    ConversationHistory bounded, role-aware message history
    ToolRegistry, Tool  tool registration and dispatch
"""

from ollama_harness.config import ClientConfig, load_config
from ollama_harness.core.coordinator import Coordinator
from ollama_harness.errors import (
    DecodeError,
    HarnessError,
    InvalidArguments,
    ServerError,
    StreamAborted,
    ToolCallError,
    ToolExecutionFailed,
    ToolRoundLimitExceeded,
    TransportError,
    UnknownTool,
)
from ollama_harness.history import Conversation, ConversationHistory, ConversationStore
from ollama_harness.llm.client import OllamaClient
from ollama_harness.llm.options import GenerationOptions, ResponseFormat
from ollama_harness.llm.requests import ChatRequest, EmbeddingsRequest, GenerationRequest
from ollama_harness.stream.decoder import AbortSignal
from ollama_harness.tools.base import Tool
from ollama_harness.tools.registry import ToolRegistry
from ollama_harness.types import (
    ChatResponse,
    EmbeddingsResponse,
    GenerationResponse,
    Message,
    MessageRole,
    ToolCall,
    ToolDescriptor,
    encode_image,
)

__all__ = [
    "AbortSignal",
    "ChatRequest",
    "ChatResponse",
    "ClientConfig",
    "Conversation",
    "ConversationHistory",
    "ConversationStore",
    "Coordinator",
    "DecodeError",
    "EmbeddingsRequest",
    "EmbeddingsResponse",
    "GenerationOptions",
    "GenerationRequest",
    "GenerationResponse",
    "HarnessError",
    "InvalidArguments",
    "Message",
    "MessageRole",
    "OllamaClient",
    "ResponseFormat",
    "ServerError",
    "StreamAborted",
    "Tool",
    "ToolCall",
    "ToolCallError",
    "ToolDescriptor",
    "ToolExecutionFailed",
    "ToolRegistry",
    "ToolRoundLimitExceeded",
    "TransportError",
    "UnknownTool",
    "encode_image",
    "load_config",
]

__version__ = "0.1.0"
