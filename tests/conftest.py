"""Shared test fixtures for agentloop.

Provides a scripted ModelCaller that replays canned model turns, a small
output schema, and an agent factory with overridable pieces.
"""

from __future__ import annotations

from typing import Any

import pytest
from pydantic import BaseModel

from agentloop.definition import (
    AgentDefinition,
    HelperTool,
    ModelConfig,
    ObservabilityConfig,
    OutputToolConfig,
    PromptsConfig,
    ToolsConfig,
    ValidationConfig,
)
from agentloop.llm.models import ModelRequest, ModelTurn, StopReason, TokenUsage, ToolCall

OUTPUT_TOOL = "submit_answer"


class Answer(BaseModel):
    result: str
    value: float


# ------------------------------------------------------------------
# Scripted model caller
# ------------------------------------------------------------------


class ScriptedCaller:
    """ModelCaller that replays a script of turns and records every request.

    Script entries may be a ``ModelTurn``, an exception instance (raised
    from ``call``), or a callable ``(request) -> ModelTurn``.
    """

    def __init__(self, turns: list[Any]) -> None:
        self._turns = list(turns)
        self.requests: list[ModelRequest] = []
        self.closed = False

    async def call(self, request: ModelRequest, signal=None) -> ModelTurn:
        self.requests.append(request)
        if not self._turns:
            raise RuntimeError("script exhausted")
        turn = self._turns.pop(0)
        if isinstance(turn, BaseException):
            raise turn
        if callable(turn):
            return turn(request)
        return turn

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self) -> ScriptedCaller:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


# ------------------------------------------------------------------
# Turn builders
# ------------------------------------------------------------------


def tool_call(name: str, arguments: dict | None = None, call_id: str | None = None) -> ToolCall:
    return ToolCall(id=call_id or f"call_{name}", name=name, arguments=arguments or {})


def output_call(arguments: dict, call_id: str = "call_out") -> ToolCall:
    return tool_call(OUTPUT_TOOL, arguments, call_id)


def tool_turn(*calls: ToolCall, usage: TokenUsage | None = None) -> ModelTurn:
    return ModelTurn(
        tool_calls=list(calls),
        usage=usage or TokenUsage(input=10, output=5),
        stop_reason=StopReason.TOOL_USE,
    )


def text_turn(text: str = "done", usage: TokenUsage | None = None) -> ModelTurn:
    return ModelTurn(text=text, usage=usage or TokenUsage(input=10, output=5))


GOOD_OUTPUT = {"result": "success", "value": 42}
BAD_OUTPUT = {"result": 123, "value": "wrong"}


# ------------------------------------------------------------------
# Agent factory
# ------------------------------------------------------------------


def make_agent(
    *,
    name: str = "answerer",
    output_schema: Any = Answer,
    custom_validators: tuple = (),
    max_attempts: int = 3,
    max_iterations: int = 15,
    reflection_handler: Any = None,
    helpers: tuple[HelperTool, ...] = (),
    error_formatter: Any = None,
    observability: ObservabilityConfig | None = None,
    system: Any = None,
    user: Any = None,
    error: Any = None,
    temperature: float | None = None,
    initial_run_state: Any = None,
    initial_attempt_state: Any = None,
) -> AgentDefinition:
    """Build an agent definition for tests. Not checked by define_agent."""
    return AgentDefinition(
        name=name,
        description="Answers questions",
        model=ModelConfig(name="gpt-4o-mini", temperature=temperature),
        prompts=PromptsConfig(
            system=system or (lambda data, ctx, signal: f"system attempt {ctx.attempt}"),
            user=user or (lambda data, signal: f"task: {data}"),
            error=error or (lambda feedback, ctx, signal: f"fix:\n{feedback}"),
        ),
        tools=ToolsConfig(
            output=OutputToolConfig(
                name=OUTPUT_TOOL,
                description="Return the final answer",
                reflection_handler=reflection_handler,
            ),
            helpers=helpers,
        ),
        validation=ValidationConfig(
            output_schema=output_schema,
            custom_validators=custom_validators,
            max_attempts=max_attempts,
            max_iterations_per_attempt=max_iterations,
            error_formatter=error_formatter,
        ),
        observability=observability or ObservabilityConfig(),
        initial_run_state=initial_run_state,
        initial_attempt_state=initial_attempt_state,
    )


@pytest.fixture
def agent() -> AgentDefinition:
    return make_agent()


# Importable target for CLI tests.
cli_agent = make_agent()
