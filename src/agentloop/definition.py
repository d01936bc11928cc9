"""Agent definition: the configuration an execution consumes.

All types are frozen dataclasses. ``define_agent`` checks a definition
before any attempt runs and raises ``AgentDefinitionError`` carrying
every violation found, not just the first.

Usage::

    agent = define_agent(
        name="summariser",
        description="Summarises a document",
        model=ModelConfig(name="gpt-4o-mini", temperature=0.2),
        prompts=PromptsConfig(
            system=lambda data, ctx, signal: "You summarise documents.",
            user=lambda data, signal: f"Summarise:\\n{data['text']}",
            error=lambda feedback, ctx, signal: f"Fix these problems:\\n{feedback}",
        ),
        tools=ToolsConfig(output=OutputToolConfig(
            name="submit_summary", description="Return the summary",
        )),
        validation=ValidationConfig(output_schema=Summary, max_attempts=3),
    )
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel

from agentloop.context import CancelSignal, ExecutionContext
from agentloop.errors.codes import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_ITERATIONS,
    MAX_TEMPERATURE,
    MIN_MAX_ATTEMPTS,
    MIN_MAX_ITERATIONS,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
    AgentErrorCode,
)
from agentloop.errors.contexts import (
    EmptyValueContext,
    InvalidTemperatureContext,
    MinimumValueContext,
    MissingOutputSchemaContext,
)
from agentloop.errors.formatter import AgentError, agent_error
from agentloop.exceptions import AgentDefinitionError
from agentloop.result import Result
from agentloop.validation.types import ValidationLayer

PromptText = Union[str, Awaitable[str]]
SystemPromptFn = Callable[[Any, ExecutionContext, Union[CancelSignal, None]], PromptText]
UserPromptFn = Callable[[Any, Union[CancelSignal, None]], PromptText]
ErrorPromptFn = Callable[[str, ExecutionContext, Union[CancelSignal, None]], PromptText]
ErrorFormatter = Callable[[Any, str, str], str]
ReflectionHandler = Callable[
    [Any], Union[Result[str, str], Awaitable[Result[str, str]]]
]

SUBMIT_TOOL_NAME = "submit"

RunStateFn = Callable[[Any], Any]
AttemptStateFn = Callable[[Any, Any, ExecutionContext], Any]


@dataclass(frozen=True)
class ModelConfig:
    """Which model to call and how.

    Attributes:
        name: Provider model identifier.
        provider: Provider label used in error messages.
        temperature: Sampling temperature in [0, 1], or None for the default.
        max_tokens: Completion token cap, or None for the default.
    """

    name: str
    provider: str = "openai"
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass(frozen=True)
class PromptsConfig:
    """Prompt generators. Each may be a plain function or a coroutine function.

    Attributes:
        system: ``(input, context, signal)`` -> system prompt, once per attempt.
        user: ``(input, signal)`` -> user prompt, once per execution.
        error: ``(formatted_error, context, signal)`` -> feedback prompt
            for attempts after a validation failure.
    """

    system: SystemPromptFn
    user: UserPromptFn
    error: ErrorPromptFn


@dataclass(frozen=True)
class OutputToolConfig:
    """The tool the model calls to deliver its output.

    With a ``reflection_handler`` the agent runs in reflection mode: each
    output call is answered with the handler's feedback, and the model
    ends the attempt by calling the ``submit`` tool.
    """

    name: str
    description: str
    reflection_handler: ReflectionHandler | None = None


@dataclass(frozen=True)
class AgentState:
    """The state a stateful helper tool sees.

    Attributes:
        context: Current execution context. Managed by the executor.
        run: User state kept for the whole execution, across attempts.
        attempt: User state reset at the start of every attempt.
    """

    context: ExecutionContext
    run: Any = None
    attempt: Any = None


@dataclass(frozen=True)
class StateUpdate:
    """Returned by a stateful helper to change state along with its result.

    ``run`` is merged into the run state when both are dicts (keys are
    added or replaced, never removed) and replaces it otherwise.
    ``attempt`` replaces the attempt state. ``None`` leaves a tier as is.
    """

    result: Any
    run: Any = None
    attempt: Any = None


@dataclass(frozen=True)
class HelperTool:
    """An auxiliary tool the model may call during the tool loop.

    Attributes:
        name: Tool name as advertised to the model.
        description: When and why to use the tool.
        handler: Called with the validated arguments as keyword arguments.
            May be a coroutine function. Its return value is sent back
            to the model as text.
        input_model: Optional pydantic model for the arguments.
        stateful: When True the handler is called as
            ``handler(state, **arguments)`` with the current ``AgentState``
            and may return a ``StateUpdate``. Handlers must not modify
            the state they are given.
    """

    name: str
    description: str
    handler: Callable[..., Any]
    input_model: type[BaseModel] | None = None
    stateful: bool = False

    @property
    def parameters(self) -> dict:
        if self.input_model is None:
            return {"type": "object", "properties": {}}
        return self.input_model.model_json_schema()

    async def invoke(self, arguments: dict, state: AgentState | None = None) -> Any:
        if self.input_model is not None:
            arguments = self.input_model.model_validate(arguments).model_dump()
        if self.stateful:
            result = self.handler(state, **arguments)
        else:
            result = self.handler(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


@dataclass(frozen=True)
class ToolsConfig:
    output: OutputToolConfig
    helpers: Sequence[HelperTool] = ()


@dataclass(frozen=True)
class ValidationConfig:
    """Output validation and retry bounds.

    Attributes:
        output_schema: pydantic model (or type annotation) for the output.
        custom_validators: Layers run in order after the schema layer.
        max_attempts: Attempts before giving up (>= 1).
        max_iterations_per_attempt: Model turns allowed per attempt (>= 1).
        error_formatter: Optional replacement for
            ``format_validation_error_for_prompt``.
    """

    output_schema: Any
    custom_validators: Sequence[ValidationLayer] = ()
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    max_iterations_per_attempt: int = DEFAULT_MAX_ITERATIONS
    error_formatter: ErrorFormatter | None = None


@dataclass(frozen=True)
class ObservabilityConfig:
    """Which metadata fields an execution reports."""

    track_latency: bool = True
    track_tokens: bool = True
    track_attempts: bool = True


@dataclass(frozen=True)
class AgentDefinition:
    """Everything an execution needs.

    ``initial_run_state(input)`` builds the run state once per execution;
    ``initial_attempt_state(input, run, context)`` builds the attempt state
    at the start of every attempt. Both default to an empty dict.
    """

    name: str
    description: str
    model: ModelConfig
    prompts: PromptsConfig
    tools: ToolsConfig
    validation: ValidationConfig
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    initial_run_state: RunStateFn | None = None
    initial_attempt_state: AttemptStateFn | None = None


# ---------------------------------------------------------------------------
# Definition checks
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _check_non_empty(
    errors: list[AgentError],
    code: AgentErrorCode,
    value: Any,
    path: str,
) -> None:
    if _is_blank(value):
        errors.append(
            agent_error(code, EmptyValueContext(provided_value=value), path=path)
        )


def _check_minimum(
    errors: list[AgentError],
    code: AgentErrorCode,
    value: Any,
    minimum: int,
    path: str,
) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        errors.append(
            agent_error(
                code,
                MinimumValueContext(minimum_value=minimum, provided_value=value),
                path=path,
            )
        )


def collect_definition_errors(definition: AgentDefinition) -> list[AgentError]:
    """Return every problem with *definition*, in field order."""
    errors: list[AgentError] = []

    _check_non_empty(errors, AgentErrorCode.EMPTY_NAME, definition.name, "$.name")
    _check_non_empty(
        errors, AgentErrorCode.EMPTY_DESCRIPTION, definition.description, "$.description"
    )

    model = definition.model
    _check_non_empty(errors, AgentErrorCode.EMPTY_MODEL_NAME, model.name, "$.model.name")
    if model.temperature is not None and not (
        isinstance(model.temperature, (int, float))
        and not isinstance(model.temperature, bool)
        and MIN_TEMPERATURE <= model.temperature <= MAX_TEMPERATURE
    ):
        errors.append(
            agent_error(
                AgentErrorCode.INVALID_TEMPERATURE,
                InvalidTemperatureContext(
                    minimum_value=MIN_TEMPERATURE,
                    maximum_value=MAX_TEMPERATURE,
                    provided_value=model.temperature,
                ),
                path="$.model.temperature",
            )
        )
    if model.max_tokens is not None:
        _check_minimum(
            errors,
            AgentErrorCode.INVALID_MAX_TOKENS,
            model.max_tokens,
            MIN_MAX_TOKENS,
            "$.model.max_tokens",
        )

    output_tool = definition.tools.output
    _check_non_empty(
        errors,
        AgentErrorCode.EMPTY_OUTPUT_TOOL_NAME,
        output_tool.name,
        "$.tools.output.name",
    )
    _check_non_empty(
        errors,
        AgentErrorCode.EMPTY_OUTPUT_TOOL_DESCRIPTION,
        output_tool.description,
        "$.tools.output.description",
    )

    validation = definition.validation
    if validation.output_schema is None:
        errors.append(
            agent_error(
                AgentErrorCode.MISSING_OUTPUT_SCHEMA,
                MissingOutputSchemaContext(),
                path="$.validation.output_schema",
            )
        )
    _check_minimum(
        errors,
        AgentErrorCode.INVALID_MAX_ATTEMPTS,
        validation.max_attempts,
        MIN_MAX_ATTEMPTS,
        "$.validation.max_attempts",
    )
    _check_minimum(
        errors,
        AgentErrorCode.INVALID_MAX_ITERATIONS,
        validation.max_iterations_per_attempt,
        MIN_MAX_ITERATIONS,
        "$.validation.max_iterations_per_attempt",
    )
    return errors


def define_agent(
    definition: AgentDefinition | None = None,
    /,
    **fields: Any,
) -> AgentDefinition:
    """Build and check an agent definition.

    Accepts either a ready ``AgentDefinition`` or its fields as keyword
    arguments.

    Raises:
        AgentDefinitionError: With every violation found.
    """
    if definition is None:
        definition = AgentDefinition(**fields)
    elif fields:
        raise TypeError("Pass either an AgentDefinition or keyword fields, not both")

    errors = collect_definition_errors(definition)
    if errors:
        raise AgentDefinitionError(errors)
    return definition
