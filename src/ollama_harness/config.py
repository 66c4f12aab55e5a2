"""Configuration for ollama-harness.

Config discovery (first match wins):
  1. explicit path (``--config`` flag)
  2. ``./ollama_harness.yaml``
  3. ``~/.config/ollama-harness/config.yaml``
  4. Built-in defaults

``OLLAMA_HOST`` in the environment overrides ``host``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

_logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://127.0.0.1:11434"
DEFAULT_MODEL = "llama3.2"
DEFAULT_MAX_TOOL_ROUNDS = 8


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class ClientConfig:
    """Client and coordinator settings."""

    host: str = DEFAULT_HOST
    model: str = DEFAULT_MODEL
    timeout: float = 300
    connect_timeout: float = 30
    headers: dict[str, str] = field(default_factory=dict)

    # Conversation
    history_capacity: int | None = None  # None = unbounded
    max_tool_rounds: int | None = DEFAULT_MAX_TOOL_ROUNDS

    # Passed through as GenerationOptions / think
    options: dict[str, Any] = field(default_factory=dict)
    think: bool | str | None = None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./ollama_harness.yaml"),
    Path.home() / ".config" / "ollama-harness" / "config.yaml",
]


def normalize_host(host: str) -> str:
    """Accept ``host:port`` as well as full URLs, as OLLAMA_HOST does."""
    host = host.strip().rstrip("/")
    if "://" not in host:
        host = f"http://{host}"
    return host


def _parse_config(raw: dict[str, Any]) -> ClientConfig:
    known = ClientConfig.__dataclass_fields__
    unknown = sorted(k for k in raw if k not in known)
    if unknown:
        _logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
    values = {k: v for k, v in raw.items() if k in known and v is not None}
    if "host" in values:
        values["host"] = normalize_host(str(values["host"]))
    return ClientConfig(**values)


def load_config(path: str | Path | None = None) -> ClientConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    ClientConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            config_path = None
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        config = ClientConfig()
    else:
        _logger.info("Loading config from %s", config_path)
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = _parse_config(raw)

    env_host = os.environ.get("OLLAMA_HOST")
    if env_host:
        config.host = normalize_host(env_host)
    return config
