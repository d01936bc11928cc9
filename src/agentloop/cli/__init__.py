"""agentloop CLI -- check and run agent definitions from the terminal.

This module is NEVER imported from agentloop/__init__.py.
It is only loaded via the ``agentloop`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import importlib
import logging

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install agentloop[cli]"
    ) from None

from agentloop.definition import AgentDefinition


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """agentloop: run structured-output agents with validated retries."""
    ctx.ensure_object(dict)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
        )


def _load_agent(target: str) -> AgentDefinition:
    """Import ``module:attr`` and return the agent definition it names.

    *attr* may also be a zero-argument factory returning a definition.

    Raises:
        click.BadParameter: If the target is malformed or not a definition.
        AgentDefinitionError: If building the definition fails its checks.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise click.BadParameter(f"expected MODULE:ATTR, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name!r}: {e}") from None
    try:
        value = getattr(module, attr)
    except AttributeError:
        raise click.BadParameter(f"{module_name!r} has no attribute {attr!r}") from None

    if callable(value) and not isinstance(value, AgentDefinition):
        value = value()
    if not isinstance(value, AgentDefinition):
        raise click.BadParameter(
            f"{target!r} is {type(value).__name__}, not an AgentDefinition"
        )
    return value


# Register subcommands after cli group is defined
from agentloop.cli.commands.check import check  # noqa: E402
from agentloop.cli.commands.run import run  # noqa: E402

cli.add_command(check)
cli.add_command(run)
