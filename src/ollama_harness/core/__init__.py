"""Chat-turn orchestration for ollama-harness."""

from ollama_harness.core.coordinator import Coordinator

__all__ = ["Coordinator"]
