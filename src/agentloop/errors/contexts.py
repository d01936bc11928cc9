"""Typed context records for each agent error code.

Each context holds exactly the facts needed to render a human-readable
message for its code. All contexts are frozen.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class PromptType(str, enum.Enum):
    SYSTEM = "system"
    USER = "user"
    ERROR = "error"


class ExecutionPhase(str, enum.Enum):
    """Where a cancellation was observed."""

    PROMPT_GENERATION = "prompt_generation"
    ITERATION = "iteration"
    API_CALL = "api_call"
    VALIDATION = "validation"


# ---------------------------------------------------------------------------
# Definition-time contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmptyValueContext:
    """Shared by EMPTY_NAME, EMPTY_DESCRIPTION and the other blank checks."""

    provided_value: Any = None


@dataclass(frozen=True)
class MissingOutputSchemaContext:
    pass


@dataclass(frozen=True)
class MinimumValueContext:
    """Shared by INVALID_MAX_ATTEMPTS, INVALID_MAX_ITERATIONS, INVALID_MAX_TOKENS."""

    minimum_value: int
    provided_value: Any = None


@dataclass(frozen=True)
class InvalidTemperatureContext:
    minimum_value: float
    maximum_value: float
    provided_value: Any = None


# ---------------------------------------------------------------------------
# Execution contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PromptGenerationFailedContext:
    prompt_type: PromptType | None = None
    reason: str | None = None
    attempt: int | None = None


@dataclass(frozen=True)
class ValidationFailedContext:
    """Validation failure tied to one named layer.

    Also returned directly by ``validate_layers`` when a validator
    attempts to mutate its input.
    """

    layer: str | None = None
    reason: str | None = None
    attempt: int | None = None


@dataclass(frozen=True)
class MaxAttemptsExceededContext:
    attempts: int
    max_attempts: int
    last_error: str | None = None


@dataclass(frozen=True)
class MaxIterationsExceededContext:
    iteration_count: int
    max_iterations: int
    attempt: int | None = None


@dataclass(frozen=True)
class ExecutionCancelledContext:
    attempt: int
    phase: ExecutionPhase


# ---------------------------------------------------------------------------
# Model contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutputToolNotUsedContext:
    expected_tool: str
    attempt: int | None = None
    iteration_count: int | None = None


@dataclass(frozen=True)
class SubmitBeforeOutputContext:
    attempt: int | None = None
    iteration_count: int | None = None


@dataclass(frozen=True)
class ApiErrorContext:
    provider: str | None = None
    status_code: int | None = None
    message: str | None = None
    attempt: int | None = None


@dataclass(frozen=True)
class RateLimitErrorContext:
    provider: str | None = None
    retry_after: float | None = None
    limit: int | None = None


@dataclass(frozen=True)
class TokenLimitExceededContext:
    requested_tokens: int | None = None
    maximum_tokens: int | None = None
    provider: str | None = None


@dataclass(frozen=True)
class InvalidResponseContext:
    reason: str | None = None
    response_type: str | None = None


# ---------------------------------------------------------------------------
# Observability contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricsCollectionFailedContext:
    metric_type: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class LoggingFailedContext:
    log_level: str | None = None
    reason: str | None = None
