"""Helpers shared by the CLI commands."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from redis.exceptions import RedisError
from rich.console import Console
from rich.markup import escape
import typer

from queue_explorer.actions import ActionResult
from queue_explorer.config import Settings, get_settings
from queue_explorer.errors import QueueExplorerError
from queue_explorer.explorer import Explorer, open_explorer
from queue_explorer.view_state import ViewState

console = Console()

T = TypeVar("T")

RESULT_STYLES = {"info": "green", "warning": "yellow", "error": "red"}


@dataclass
class GlobalOptions:
    """Values of the options given before the command name."""

    connections_file: Path | None = None
    log_level: str | None = None
    log_format: str | None = None


options = GlobalOptions()


def load_settings() -> Settings:
    """Settings from the environment, with command line overrides applied."""
    settings = get_settings()
    overrides = {}
    if options.connections_file is not None:
        overrides["connections_file"] = options.connections_file
    if options.log_level is not None:
        overrides["log_level"] = options.log_level.upper()
    if options.log_format is not None:
        overrides["log_format"] = options.log_format
    return settings.model_copy(update=overrides) if overrides else settings


def run_in_explorer(
    handler: Callable[[Explorer], Awaitable[T]],
    view_state: ViewState | None = None,
) -> T:
    """Open an explorer session, run ``handler`` in it and close it again.

    Explorer and backend errors end the command with a message and exit code 1.
    """
    settings = load_settings()

    async def _main() -> T:
        async with open_explorer(settings, view_state=view_state) as explorer:
            return await handler(explorer)

    try:
        return asyncio.run(_main())
    except QueueExplorerError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from None
    except RedisError as e:
        console.print(f"[bold red]Error:[/bold red] Redis error: {escape(str(e))}")
        raise typer.Exit(code=1) from None


def print_result(result: ActionResult) -> None:
    style = RESULT_STYLES[result.level]
    console.print(f"[{style}]{escape(result.message)}[/{style}]", highlight=False)


def report(result: ActionResult) -> None:
    """Print an action result. Errors end the command with exit code 1."""
    print_result(result)
    if result.level == "error":
        raise typer.Exit(code=1)


def read_document(path: Path) -> str:
    """Contents of a YAML/JSON input file; ``-`` reads stdin."""
    if str(path) == "-":
        return typer.get_text_stream("stdin").read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] Cannot read {path}: {e}")
        raise typer.Exit(code=1) from None
