"""agentloop run -- execute an agent against the OpenAI-compatible adapter."""

from __future__ import annotations

import asyncio
import dataclasses
import json
from typing import TYPE_CHECKING, Any

import click
from dotenv import load_dotenv

from agentloop.cli.formatting import (
    format_error,
    format_errors,
    format_metadata,
    format_output,
    get_console,
)
from agentloop.context import cancel_after
from agentloop.definition import collect_definition_errors
from agentloop.exceptions import AgentDefinitionError
from agentloop.llm.client import OpenAIModelCaller
from agentloop.llm.errors import LLMConfigError
from agentloop.orchestrator.loop import execute_agent
from agentloop.result import Err

if TYPE_CHECKING:
    from agentloop.definition import AgentDefinition
    from agentloop.orchestrator.models import ExecuteFailure, ExecuteSuccess
    from agentloop.result import Result


async def _execute(
    agent: AgentDefinition,
    caller: OpenAIModelCaller,
    data: Any,
    max_attempts: int | None,
    timeout: float | None,
) -> Result[ExecuteSuccess, ExecuteFailure]:
    signal = cancel_after(timeout) if timeout else None
    async with caller:
        return await execute_agent(agent, caller, data, max_attempts=max_attempts, signal=signal)


@click.command()
@click.argument("target")
@click.option("--input", "input_json", default="null", help="Agent input as JSON.")
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Override the definition's max_attempts.",
)
@click.option("--timeout", type=float, default=None, help="Cancel after SECONDS.")
@click.option("--base-url", default=None, envvar="AGENTLOOP_BASE_URL", help="API base URL.")
@click.option("--model", default=None, envvar="AGENTLOOP_MODEL", help="Override the model name.")
def run(
    target: str,
    input_json: str,
    max_attempts: int | None,
    timeout: float | None,
    base_url: str | None,
    model: str | None,
) -> None:
    """Run the agent at TARGET (``module:attr``) and print its output."""
    from agentloop.cli import _load_agent

    load_dotenv()
    console = get_console()

    try:
        data = json.loads(input_json)
    except json.JSONDecodeError as e:
        format_error(f"--input is not valid JSON: {e}", console)
        raise SystemExit(1) from None

    try:
        agent = _load_agent(target)
    except click.BadParameter as e:
        format_error(e.format_message(), console)
        raise SystemExit(1) from None
    except AgentDefinitionError as e:
        format_errors(e.errors, console)
        raise SystemExit(1) from None

    if model:
        agent = dataclasses.replace(agent, model=dataclasses.replace(agent.model, name=model))

    errors = collect_definition_errors(agent)
    if errors:
        format_errors(errors, console)
        raise SystemExit(1)

    try:
        caller = OpenAIModelCaller(base_url=base_url, provider=agent.model.provider)
    except LLMConfigError as e:
        format_error(str(e), console)
        raise SystemExit(1) from None

    result = asyncio.run(_execute(agent, caller, data, max_attempts, timeout))
    if isinstance(result, Err):
        format_errors(result.error.errors, console)
        format_metadata(result.error.metadata, console)
        raise SystemExit(1)

    format_output(result.data.output, console)
    format_metadata(result.data.metadata, console)
