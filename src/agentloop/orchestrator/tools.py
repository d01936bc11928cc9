"""Tool advertisement and dispatch for the tool loop.

``build_tools`` lists what the model may call for an agent: the output
tool (whose parameters are the output schema), any helper tools, and, in
reflection mode, the ``submit`` tool. ``ToolDispatcher`` runs the tool
calls of one model turn and reports what happened.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from agentloop.definition import SUBMIT_TOOL_NAME, AgentState, StateUpdate
from agentloop.llm.models import ToolCall, ToolResultMessage, ToolSpec
from agentloop.orchestrator.callbacks import safe_invoke_callback
from agentloop.result import Err, Ok
from agentloop.validation.validators import output_json_schema

if TYPE_CHECKING:
    from agentloop.context import ExecutionContext
    from agentloop.definition import AgentDefinition, HelperTool
    from agentloop.orchestrator.callbacks import ExecuteCallbacks

logger = logging.getLogger(__name__)

SUBMIT_TOOL = ToolSpec(
    name=SUBMIT_TOOL_NAME,
    description=(
        "Submit your final output for validation. "
        "Call this when you are satisfied with your output."
    ),
    parameters={"type": "object", "properties": {}},
)


def is_reflection_enabled(agent: AgentDefinition) -> bool:
    return agent.tools.output.reflection_handler is not None


def build_tools(agent: AgentDefinition) -> list[ToolSpec]:
    """Return the tool specs advertised to the model, output tool first."""
    output = agent.tools.output
    tools = [
        ToolSpec(
            name=output.name,
            description=output.description,
            parameters=output_json_schema(agent.validation.output_schema),
        )
    ]
    tools.extend(
        ToolSpec(name=h.name, description=h.description, parameters=h.parameters)
        for h in agent.tools.helpers
    )
    if is_reflection_enabled(agent):
        tools.append(SUBMIT_TOOL)
    return tools


def _merge_run(current: Any, update: Any) -> Any:
    if update is None:
        return current
    if isinstance(current, dict) and isinstance(update, dict):
        return {**current, **update}
    return update


def apply_update(state: AgentState, update: StateUpdate) -> AgentState:
    """Return *state* with *update* applied. *state* itself is left untouched."""
    return AgentState(
        context=state.context,
        run=_merge_run(state.run, update.run),
        attempt=state.attempt if update.attempt is None else update.attempt,
    )


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool execution."""

    tool_name: str
    success: bool
    output: str = ""
    error: str = ""
    state: AgentState | None = None

    @property
    def content(self) -> str:
        return self.output if self.success else self.error


@dataclass
class TurnOutcome:
    """What the tool calls of a single model turn amounted to.

    Mutable: filled in while the calls are processed in order.
    """

    results: list[ToolResultMessage] = field(default_factory=list)
    output_found: bool = False
    submit_found: bool = False
    last_output: Any = None
    state: AgentState | None = None


class ToolDispatcher:
    """Dispatches model tool calls for one agent.

    Usage::

        dispatcher = ToolDispatcher(agent)
        outcome = await dispatcher.process(turn.tool_calls, ctx, callbacks, errors)
        if outcome.submit_found and not outcome.output_found:
            ...
    """

    def __init__(self, agent: AgentDefinition) -> None:
        self._agent = agent
        self._helpers: dict[str, HelperTool] = {h.name: h for h in agent.tools.helpers}
        self._reflection = is_reflection_enabled(agent)

    async def execute_helper(
        self,
        tool_name: str,
        arguments: dict,
        state: AgentState | None = None,
    ) -> ToolResult:
        """Execute a helper tool by name with the given arguments.

        Stateful helpers receive *state*. When one returns a ``StateUpdate``
        the resulting state is reported on ``ToolResult.state``; failures
        never change state.
        """
        tool = self._helpers.get(tool_name)
        if tool is None:
            return ToolResult(tool_name, success=False, error=f"Unknown tool: {tool_name}")
        try:
            result = await tool.invoke(arguments, state)
        except ValidationError as exc:
            return ToolResult(
                tool_name, success=False, error=f"Invalid arguments: {exc}"
            )
        except Exception as exc:
            logger.debug("Tool %s failed: %s", tool_name, exc, exc_info=True)
            return ToolResult(tool_name, success=False, error=f"Error: {exc}")

        if isinstance(result, Err):
            return ToolResult(tool_name, success=False, error=_to_text(result.error))
        if isinstance(result, Ok):
            result = result.data
        new_state = None
        if isinstance(result, StateUpdate):
            if state is not None:
                new_state = apply_update(state, result)
            result = result.result
        return ToolResult(tool_name, success=True, output=_to_text(result), state=new_state)

    async def reflect(self, arguments: Any) -> ToolResult:
        """Run the output tool's reflection handler on *arguments*."""
        name = self._agent.tools.output.name
        handler = self._agent.tools.output.reflection_handler
        try:
            result = handler(arguments)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.debug("Reflection handler failed: %s", exc, exc_info=True)
            return ToolResult(name, success=False, error=f"Error: {exc}")
        if isinstance(result, Err):
            return ToolResult(name, success=False, error=_to_text(result.error))
        if isinstance(result, Ok):
            result = result.data
        return ToolResult(name, success=True, output=_to_text(result))

    async def process(
        self,
        calls: list[ToolCall],
        context: ExecutionContext,
        callbacks: ExecuteCallbacks,
        callback_errors: list[Exception],
        last_output: Any = None,
        state: AgentState | None = None,
    ) -> TurnOutcome:
        """Handle every tool call of one model turn, in order.

        The output tool records its arguments (and, in reflection mode,
        answers with the handler's feedback). ``submit`` only marks the
        turn. Helper and unknown tools answer with a tool result. State
        updates from stateful helpers are threaded from call to call and
        the final state is returned on ``TurnOutcome.state``.
        """
        if state is None:
            state = AgentState(context=context, run={}, attempt={})
        outcome = TurnOutcome(last_output=last_output, state=state)
        output_name = self._agent.tools.output.name

        for call in calls:
            safe_invoke_callback(
                callbacks.on_tool_call, (context, call.name, call.arguments), callback_errors
            )

            if call.name == SUBMIT_TOOL_NAME and call.name not in self._helpers:
                outcome.submit_found = True
                safe_invoke_callback(
                    callbacks.on_tool_result, (context, call.name, ""), callback_errors
                )
                continue

            if call.name == output_name:
                outcome.output_found = True
                outcome.last_output = call.arguments
                if not self._reflection:
                    continue
                result = await self.reflect(call.arguments)
            else:
                result = await self.execute_helper(call.name, call.arguments, outcome.state)
                if result.state is not None:
                    outcome.state = result.state

            outcome.results.append(
                ToolResultMessage(
                    tool_call_id=call.id,
                    name=call.name,
                    content=result.content,
                    is_error=not result.success,
                )
            )
            safe_invoke_callback(
                callbacks.on_tool_result, (context, call.name, result.content), callback_errors
            )

        return outcome
