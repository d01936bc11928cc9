"""agentloop check -- validate an agent definition without running it."""

from __future__ import annotations

import click

from agentloop.cli.formatting import format_error, format_errors, get_console
from agentloop.definition import collect_definition_errors
from agentloop.exceptions import AgentDefinitionError


@click.command()
@click.argument("target")
def check(target: str) -> None:
    """Check the agent definition at TARGET (``module:attr``)."""
    from agentloop.cli import _load_agent

    console = get_console()
    try:
        agent = _load_agent(target)
    except click.BadParameter as e:
        format_error(e.format_message(), console)
        raise SystemExit(1) from None
    except AgentDefinitionError as e:
        format_errors(e.errors, console)
        raise SystemExit(1) from None

    errors = collect_definition_errors(agent)
    if errors:
        format_errors(errors, console)
        raise SystemExit(1)

    console.print(f"[green]OK[/green] {agent.name}: {agent.description}", highlight=False)
