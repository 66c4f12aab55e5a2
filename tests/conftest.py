"""Shared fixtures for ollama-harness tests."""

from __future__ import annotations

from typing import Any

import pytest

from helpers import ScriptedTransport


@pytest.fixture
def scripted():
    """Factory: ``scripted(reply, reply, ...)`` -> ``ScriptedTransport``."""
    def factory(*replies: Any) -> ScriptedTransport:
        return ScriptedTransport(list(replies))
    return factory
