"""Rich formatting helpers for the agentloop CLI.

Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agentloop.errors import format_agent_error

if TYPE_CHECKING:
    from agentloop.errors import AgentError
    from agentloop.orchestrator.models import ExecuteMetadata


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation.

    Long lines are not wrapped, so messages stay on one line when piped.
    """
    return Console(stderr=False, soft_wrap=True)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)


def format_errors(errors: list[AgentError], console: Console) -> None:
    """Display agent errors, one per line with code and path."""
    console.print(f"[red bold]{len(errors)} error(s)[/red bold]")
    for error in errors:
        where = f" [dim]{escape(error.path)}[/dim]" if error.path else ""
        console.print(
            f"  [yellow]{error.code.value}[/yellow]{where}: {escape(format_agent_error(error))}",
            highlight=False,
        )


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def format_output(output: Any, console: Console) -> None:
    """Display a validated output as indented JSON."""
    text = json.dumps(_to_jsonable(output), indent=2, default=str)
    console.print(escape(text), highlight=False)


def format_metadata(metadata: ExecuteMetadata, console: Console) -> None:
    """Display execution metadata as a two-column table."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")

    if metadata.attempts is not None:
        table.add_row("Attempts", str(metadata.attempts))
    if metadata.latency_ms is not None:
        table.add_row("Latency", f"{metadata.latency_ms:.0f} ms")
    if metadata.tokens is not None:
        tokens = metadata.tokens
        table.add_row(
            "Tokens",
            f"[green]{tokens.total}[/green] (input {tokens.input}, output {tokens.output})",
        )
        if tokens.cache_read_input:
            table.add_row("Cached input", str(tokens.cache_read_input))
    if metadata.callback_errors:
        table.add_row("Callback errors", f"[yellow]{len(metadata.callback_errors)}[/yellow]")

    console.print(table)
