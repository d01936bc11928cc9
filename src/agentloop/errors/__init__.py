"""Agent error taxonomy: codes, contexts, structured errors, and formatters."""

from agentloop.errors.codes import (
    CODE_CATEGORIES,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_ITERATIONS,
    MAX_TEMPERATURE,
    MIN_MAX_ATTEMPTS,
    MIN_MAX_ITERATIONS,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
    AgentErrorCategory,
    AgentErrorCode,
    ErrorSeverity,
)
from agentloop.errors.contexts import (
    ApiErrorContext,
    EmptyValueContext,
    ExecutionCancelledContext,
    ExecutionPhase,
    InvalidResponseContext,
    InvalidTemperatureContext,
    LoggingFailedContext,
    MaxAttemptsExceededContext,
    MaxIterationsExceededContext,
    MetricsCollectionFailedContext,
    MinimumValueContext,
    MissingOutputSchemaContext,
    OutputToolNotUsedContext,
    PromptGenerationFailedContext,
    PromptType,
    RateLimitErrorContext,
    SubmitBeforeOutputContext,
    TokenLimitExceededContext,
    ValidationFailedContext,
)
from agentloop.errors.formatter import (
    AgentError,
    agent_error,
    format_agent_error,
    format_agent_errors_for_developer,
    is_agent_error,
    is_agent_error_array,
)
from agentloop.errors.structured import (
    StructuredError,
    append_metadata,
    format_errors_by_severity,
    format_list,
    format_unknown_error,
    format_value,
    is_structured_error,
    is_structured_error_array,
    safe_stringify,
    truncate,
)

__all__ = [
    "CODE_CATEGORIES",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_MAX_ITERATIONS",
    "MAX_TEMPERATURE",
    "MIN_MAX_ATTEMPTS",
    "MIN_MAX_ITERATIONS",
    "MIN_MAX_TOKENS",
    "MIN_TEMPERATURE",
    "AgentError",
    "AgentErrorCategory",
    "AgentErrorCode",
    "ApiErrorContext",
    "EmptyValueContext",
    "ErrorSeverity",
    "ExecutionCancelledContext",
    "ExecutionPhase",
    "InvalidResponseContext",
    "InvalidTemperatureContext",
    "LoggingFailedContext",
    "MaxAttemptsExceededContext",
    "MaxIterationsExceededContext",
    "MetricsCollectionFailedContext",
    "MinimumValueContext",
    "MissingOutputSchemaContext",
    "OutputToolNotUsedContext",
    "PromptGenerationFailedContext",
    "PromptType",
    "RateLimitErrorContext",
    "StructuredError",
    "SubmitBeforeOutputContext",
    "TokenLimitExceededContext",
    "ValidationFailedContext",
    "agent_error",
    "append_metadata",
    "format_agent_error",
    "format_agent_errors_for_developer",
    "format_errors_by_severity",
    "format_list",
    "format_unknown_error",
    "format_value",
    "is_agent_error",
    "is_agent_error_array",
    "is_structured_error",
    "is_structured_error_array",
    "safe_stringify",
    "truncate",
]
