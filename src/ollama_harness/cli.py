"""Interactive streaming chat CLI for ollama-harness."""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console

from ollama_harness import __version__
from ollama_harness.config import ClientConfig, load_config, normalize_host
from ollama_harness.core.coordinator import Coordinator
from ollama_harness.errors import HarnessError
from ollama_harness.llm.client import OllamaClient
from ollama_harness.tools.builtin import register_builtin_tools
from ollama_harness.tools.registry import ToolRegistry
from ollama_harness.types import Message

console = Console()

_EXIT_WORDS = {"exit", "quit", "/exit", "/quit"}


def apply_overrides(
    config: ClientConfig, model: str | None = None, host: str | None = None,
) -> ClientConfig:
    """Apply command-line overrides; the host is normalised like the config value."""
    if model:
        config.model = model
    if host:
        config.host = normalize_host(host)
    return config


def setup_tools(use_calculator: bool, discover: bool) -> ToolRegistry:
    registry = ToolRegistry()
    if use_calculator:
        register_builtin_tools(registry)
    if discover:
        registry.discover()
    return registry


async def _chat_loop(config: ClientConfig, system: str | None, tools: ToolRegistry) -> None:
    async with OllamaClient.from_config(config) as client:
        coordinator = Coordinator.from_config(client, config, tools=tools)
        if system:
            coordinator.history.push(Message.system(system))

        while True:
            try:
                text = await asyncio.to_thread(console.input, "[bold green]> [/bold green]")
            except EOFError:
                break
            text = text.strip()
            if not text:
                continue
            if text.lower() in _EXIT_WORDS:
                break
            if text == "/clear":
                coordinator.history.clear()
                if system:
                    coordinator.history.push(Message.system(system))
                console.print("[dim]Conversation cleared.[/dim]")
                continue

            try:
                thinking_shown = False
                async for response in coordinator.chat_stream([Message.user(text)]):
                    msg = response.message
                    if msg.thinking:
                        if not thinking_shown:
                            console.print("[dim]thinking...[/dim]")
                            thinking_shown = True
                        console.print(msg.thinking, style="dim", end="")
                    for call in msg.tool_calls:
                        console.print(f"\n[cyan]-> {call.name}({call.arguments})[/cyan]")
                    if msg.content:
                        console.print(msg.content, end="", markup=False, highlight=False)
                console.print()
            except HarnessError as e:
                console.print(f"\n[red]{type(e).__name__}: {e}[/red]")


@click.group()
@click.version_option(__version__, prog_name="ollama-harness")
def main() -> None:
    """ollama-harness - streaming Ollama client with tool calling."""


@main.command()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to ollama_harness.yaml (auto-detected if omitted)")
@click.option("--model", "-m", default=None, help="Model name")
@click.option("--host", default=None, help="Server URL, e.g. http://127.0.0.1:11434")
@click.option("--system", "-s", default=None, help="System prompt")
@click.option("--calculator", is_flag=True, help="Enable the built-in calculator tool")
@click.option("--plugins", is_flag=True, help="Load tools from installed entry points")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def chat(config_path: str | None, model: str | None, host: str | None,
         system: str | None, calculator: bool, plugins: bool, verbose: bool) -> None:
    """Chat interactively with streaming output."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    config = apply_overrides(load_config(config_path), model=model, host=host)

    tools = setup_tools(calculator, plugins)
    console.print(f"[dim]Model: {config.model} @ {config.host}[/dim]")
    if len(tools):
        console.print(f"[dim]Tools: {', '.join(tools.tool_names())}[/dim]")
    console.print("[dim]Type /clear to reset, exit to quit.[/dim]\n")

    try:
        asyncio.run(_chat_loop(config, system, tools))
    except KeyboardInterrupt:
        console.print("\n[dim]Bye.[/dim]")


if __name__ == "__main__":
    main()
