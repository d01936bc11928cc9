"""Agent error construction and message formatting.

``format_agent_error`` is pure: it is used both for developer logs and for
feedback prompts sent back to the model, so every free-form value it
renders is capped at 100 characters.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Literal

from agentloop.errors.codes import (
    CODE_CATEGORIES,
    AgentErrorCategory,
    AgentErrorCode,
    ErrorSeverity,
)
from agentloop.errors.contexts import (
    ApiErrorContext,
    EmptyValueContext,
    ExecutionCancelledContext,
    InvalidResponseContext,
    InvalidTemperatureContext,
    LoggingFailedContext,
    MaxAttemptsExceededContext,
    MaxIterationsExceededContext,
    MetricsCollectionFailedContext,
    MinimumValueContext,
    OutputToolNotUsedContext,
    PromptGenerationFailedContext,
    RateLimitErrorContext,
    TokenLimitExceededContext,
    ValidationFailedContext,
)
from agentloop.errors.structured import (
    StructuredError,
    append_metadata,
    format_errors_by_severity,
    format_unknown_error,
    format_value,
)

AgentError = StructuredError[AgentErrorCode, AgentErrorCategory, Any]


def agent_error(
    code: AgentErrorCode,
    context: Any,
    *,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    path: str | None = None,
    suggestion: str | None = None,
) -> AgentError:
    """Build an AgentError whose category is derived from *code*.

    Usage::

        agent_error(
            AgentErrorCode.EXECUTION_CANCELLED,
            ExecutionCancelledContext(attempt=2, phase=ExecutionPhase.ITERATION),
        )
    """
    return StructuredError(
        code=code,
        severity=severity,
        category=CODE_CATEGORIES[code],
        context=context,
        path=path,
        suggestion=suggestion,
    )


def is_agent_error(value: Any) -> bool:
    return isinstance(value, StructuredError) and isinstance(value.code, AgentErrorCode)


def is_agent_error_array(value: Any) -> bool:
    """Return True for a non-empty list/tuple made only of agent errors."""
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(is_agent_error(item) for item in value)


# ---------------------------------------------------------------------------
# Per-code templates
# ---------------------------------------------------------------------------


def _non_empty(subject: str) -> Callable[[EmptyValueContext], str]:
    def render(context: EmptyValueContext) -> str:
        message = f"{subject} must be a non-empty string"
        if context.provided_value is not None:
            message += f'; was given "{format_value(context.provided_value)}"'
        return message

    return render


def _at_least(subject: str) -> Callable[[MinimumValueContext], str]:
    def render(context: MinimumValueContext) -> str:
        message = f"{subject} must be at least {context.minimum_value}"
        if context.provided_value is not None:
            message += f"; was given {format_value(context.provided_value)}"
        return message

    return render


def _invalid_temperature(context: InvalidTemperatureContext) -> str:
    message = (
        f"Temperature must be between {context.minimum_value} "
        f"and {context.maximum_value}"
    )
    if context.provided_value is not None:
        message += f"; was given {format_value(context.provided_value)}"
    return message


def _with_reason(parts: list[str], reason: str | None) -> str:
    message = " ".join(parts)
    if reason:
        message += f"; {format_value(reason)}"
    return message


def _prompt_generation_failed(context: PromptGenerationFailedContext) -> str:
    parts = ["Prompt generation failed"]
    if context.prompt_type is not None:
        parts.append(f"for {getattr(context.prompt_type, 'value', context.prompt_type)} prompt")
    if context.attempt is not None:
        parts.append(f"on attempt {context.attempt}")
    return _with_reason(parts, context.reason)


def _validation_failed(context: ValidationFailedContext) -> str:
    parts = ["Validation failed"]
    if context.layer:
        parts.append(f'in "{context.layer}"')
    if context.attempt is not None:
        parts.append(f"on attempt {context.attempt}")
    return _with_reason(parts, context.reason)


def _max_attempts_exceeded(context: MaxAttemptsExceededContext) -> str:
    message = (
        f"Maximum attempts exceeded ({context.attempts} of {context.max_attempts})"
    )
    if context.last_error:
        message += f"; last error: {format_value(context.last_error)}"
    return message


def _max_iterations_exceeded(context: MaxIterationsExceededContext) -> str:
    message = (
        f"Maximum iterations exceeded; reached {context.iteration_count} "
        f"of {context.max_iterations} allowed"
    )
    if context.attempt is not None:
        message += f" on attempt {context.attempt}"
    return message


def _execution_cancelled(context: ExecutionCancelledContext) -> str:
    phase = getattr(context.phase, "value", context.phase)
    return f"Execution cancelled at attempt {context.attempt} during {phase} phase"


def _output_tool_not_used(context: OutputToolNotUsedContext) -> str:
    return f"Model did not call output tool; expected {context.expected_tool}"


def _submit_before_output(context: Any) -> str:
    return "Model called submit before calling output tool"


def _api_error(context: ApiErrorContext) -> str:
    parts = ["API error"]
    if context.provider:
        parts.append(f"from {context.provider}")
    if context.status_code is not None:
        parts.append(f"(status {context.status_code})")
    return _with_reason(parts, context.message)


def _rate_limit_error(context: RateLimitErrorContext) -> str:
    message = "Rate limit exceeded"
    if context.provider:
        message += f" for {context.provider}"
    if context.retry_after is not None:
        message += f"; retry after {context.retry_after:g}s"
    if context.limit:
        message += f" (limit: {context.limit})"
    return message


def _token_limit_exceeded(context: TokenLimitExceededContext) -> str:
    message = "Token limit exceeded"
    if context.requested_tokens is not None and context.maximum_tokens is not None:
        message += (
            f"; requested {context.requested_tokens}, "
            f"maximum is {context.maximum_tokens}"
        )
    if context.provider:
        message += f" ({context.provider})"
    return message


def _invalid_response(context: InvalidResponseContext) -> str:
    message = "Invalid response from model"
    if context.response_type:
        message += f"; got {context.response_type}"
    if context.reason:
        message += f" ({format_value(context.reason)})"
    return message


def _metrics_collection_failed(context: MetricsCollectionFailedContext) -> str:
    parts = ["Metrics collection failed"]
    if context.metric_type:
        parts.append(f"for {context.metric_type}")
    return _with_reason(parts, context.reason)


def _logging_failed(context: LoggingFailedContext) -> str:
    parts = ["Logging failed"]
    if context.log_level:
        parts.append(f"at {context.log_level} level")
    return _with_reason(parts, context.reason)


_FORMATTERS: dict[AgentErrorCode, Callable[[Any], str]] = {
    AgentErrorCode.EMPTY_NAME: _non_empty("Agent name"),
    AgentErrorCode.EMPTY_DESCRIPTION: _non_empty("Agent description"),
    AgentErrorCode.EMPTY_MODEL_NAME: _non_empty("Model name"),
    AgentErrorCode.EMPTY_OUTPUT_TOOL_NAME: _non_empty("Output tool name"),
    AgentErrorCode.EMPTY_OUTPUT_TOOL_DESCRIPTION: _non_empty("Output tool description"),
    AgentErrorCode.MISSING_OUTPUT_SCHEMA: lambda _: "Validation output schema must be provided",
    AgentErrorCode.INVALID_MAX_ATTEMPTS: _at_least("Validation max_attempts"),
    AgentErrorCode.INVALID_MAX_ITERATIONS: _at_least("Validation max_iterations_per_attempt"),
    AgentErrorCode.INVALID_TEMPERATURE: _invalid_temperature,
    AgentErrorCode.INVALID_MAX_TOKENS: _at_least("Maximum tokens"),
    AgentErrorCode.PROMPT_GENERATION_FAILED: _prompt_generation_failed,
    AgentErrorCode.VALIDATION_FAILED: _validation_failed,
    AgentErrorCode.MAX_ATTEMPTS_EXCEEDED: _max_attempts_exceeded,
    AgentErrorCode.MAX_ITERATIONS_EXCEEDED: _max_iterations_exceeded,
    AgentErrorCode.EXECUTION_CANCELLED: _execution_cancelled,
    AgentErrorCode.OUTPUT_TOOL_NOT_USED: _output_tool_not_used,
    AgentErrorCode.SUBMIT_BEFORE_OUTPUT: _submit_before_output,
    AgentErrorCode.API_ERROR: _api_error,
    AgentErrorCode.RATE_LIMIT_ERROR: _rate_limit_error,
    AgentErrorCode.TOKEN_LIMIT_EXCEEDED: _token_limit_exceeded,
    AgentErrorCode.INVALID_RESPONSE: _invalid_response,
    AgentErrorCode.METRICS_COLLECTION_FAILED: _metrics_collection_failed,
    AgentErrorCode.LOGGING_FAILED: _logging_failed,
}

# Import-time exhaustiveness check over the code enum.
_missing = set(AgentErrorCode) - set(_FORMATTERS)
if _missing:  # pragma: no cover
    raise RuntimeError(f"No formatter for agent error codes: {sorted(_missing)}")


# ---------------------------------------------------------------------------
# Public formatters
# ---------------------------------------------------------------------------


def format_agent_error(error: AgentError) -> str:
    """Render one agent error as a single human-readable line.

    Args:
        error: The error to render.

    Returns:
        The code's templated message with `` at <path>`` and
        ``. <suggestion>`` appended when present.
    """
    render = _FORMATTERS.get(error.code)
    if render is None:
        message = format_unknown_error(error.code, error.context)
    else:
        message = render(error.context)
    return append_metadata(message, error.path, error.suggestion)


def format_agent_errors_for_developer(
    errors: Sequence[AgentError],
    section_format: Literal["markdown", "text"] = "markdown",
) -> str:
    """Render agent errors grouped by severity, errors first.

    Usage::

        print(format_agent_errors_for_developer(failure.errors))
        # ## Errors (1)
        # - Execution cancelled at attempt 1 during iteration phase
    """
    return format_errors_by_severity(errors, format_agent_error, section_format)
