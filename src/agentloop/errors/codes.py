"""Agent error codes, categories, and definition constraints."""

from __future__ import annotations

import enum


class ErrorSeverity(str, enum.Enum):
    """How serious a structured error is."""

    ERROR = "error"
    WARNING = "warning"


class AgentErrorCategory(str, enum.Enum):
    """Broad area a failure belongs to."""

    VALIDATION = "validation"
    EXECUTION = "execution"
    MODEL = "model"
    OBSERVABILITY = "observability"


class AgentErrorCode(str, enum.Enum):
    """Every failure condition the agent core can report.

    Each code maps to exactly one category (see ``CODE_CATEGORIES``) and
    one context dataclass (see ``agentloop.errors.contexts``).
    """

    # Definition-time
    EMPTY_NAME = "EMPTY_NAME"
    EMPTY_DESCRIPTION = "EMPTY_DESCRIPTION"
    EMPTY_MODEL_NAME = "EMPTY_MODEL_NAME"
    EMPTY_OUTPUT_TOOL_NAME = "EMPTY_OUTPUT_TOOL_NAME"
    EMPTY_OUTPUT_TOOL_DESCRIPTION = "EMPTY_OUTPUT_TOOL_DESCRIPTION"
    MISSING_OUTPUT_SCHEMA = "MISSING_OUTPUT_SCHEMA"
    INVALID_MAX_ATTEMPTS = "INVALID_MAX_ATTEMPTS"
    INVALID_MAX_ITERATIONS = "INVALID_MAX_ITERATIONS"
    INVALID_TEMPERATURE = "INVALID_TEMPERATURE"
    INVALID_MAX_TOKENS = "INVALID_MAX_TOKENS"

    # Execution
    PROMPT_GENERATION_FAILED = "PROMPT_GENERATION_FAILED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    MAX_ATTEMPTS_EXCEEDED = "MAX_ATTEMPTS_EXCEEDED"
    MAX_ITERATIONS_EXCEEDED = "MAX_ITERATIONS_EXCEEDED"
    EXECUTION_CANCELLED = "EXECUTION_CANCELLED"

    # Model
    OUTPUT_TOOL_NOT_USED = "OUTPUT_TOOL_NOT_USED"
    SUBMIT_BEFORE_OUTPUT = "SUBMIT_BEFORE_OUTPUT"
    API_ERROR = "API_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    TOKEN_LIMIT_EXCEEDED = "TOKEN_LIMIT_EXCEEDED"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    # Observability
    METRICS_COLLECTION_FAILED = "METRICS_COLLECTION_FAILED"
    LOGGING_FAILED = "LOGGING_FAILED"


_V = AgentErrorCategory.VALIDATION
_X = AgentErrorCategory.EXECUTION
_M = AgentErrorCategory.MODEL
_O = AgentErrorCategory.OBSERVABILITY

CODE_CATEGORIES: dict[AgentErrorCode, AgentErrorCategory] = {
    AgentErrorCode.EMPTY_NAME: _V,
    AgentErrorCode.EMPTY_DESCRIPTION: _V,
    AgentErrorCode.EMPTY_MODEL_NAME: _V,
    AgentErrorCode.EMPTY_OUTPUT_TOOL_NAME: _V,
    AgentErrorCode.EMPTY_OUTPUT_TOOL_DESCRIPTION: _V,
    AgentErrorCode.MISSING_OUTPUT_SCHEMA: _V,
    AgentErrorCode.INVALID_MAX_ATTEMPTS: _V,
    AgentErrorCode.INVALID_MAX_ITERATIONS: _V,
    AgentErrorCode.INVALID_TEMPERATURE: _V,
    AgentErrorCode.INVALID_MAX_TOKENS: _V,
    AgentErrorCode.PROMPT_GENERATION_FAILED: _X,
    AgentErrorCode.VALIDATION_FAILED: _X,
    AgentErrorCode.MAX_ATTEMPTS_EXCEEDED: _X,
    AgentErrorCode.MAX_ITERATIONS_EXCEEDED: _X,
    AgentErrorCode.EXECUTION_CANCELLED: _X,
    AgentErrorCode.OUTPUT_TOOL_NOT_USED: _M,
    AgentErrorCode.SUBMIT_BEFORE_OUTPUT: _M,
    AgentErrorCode.API_ERROR: _M,
    AgentErrorCode.RATE_LIMIT_ERROR: _M,
    AgentErrorCode.TOKEN_LIMIT_EXCEEDED: _M,
    AgentErrorCode.INVALID_RESPONSE: _M,
    AgentErrorCode.METRICS_COLLECTION_FAILED: _O,
    AgentErrorCode.LOGGING_FAILED: _O,
}

# Definition constraints
MIN_MAX_ATTEMPTS = 1
MIN_MAX_ITERATIONS = 1
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 1.0
MIN_MAX_TOKENS = 1
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MAX_ITERATIONS = 15
