"""agentloop exception hierarchy.

All agentloop-specific exceptions inherit from AgentLoopError. Runtime
execution never raises these; they exist for the outer boundary (CLI,
application code) and for build-time agent definition checks.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from agentloop.errors.formatter import (
    AgentError,
    format_agent_error,
    format_agent_errors_for_developer,
)
from agentloop.errors.structured import StructuredError
from agentloop.result import Err, Result


class AgentLoopError(Exception):
    """Base exception for all agentloop errors."""


class StructuredErrorException(AgentLoopError):
    """Carries the full array of structured errors for inspection."""

    def __init__(self, errors: Sequence[StructuredError], message: str) -> None:
        self.errors = list(errors)
        super().__init__(message)


class AgentProcessingError(StructuredErrorException):
    """Raised at the boundary when an agent run (or definition) failed.

    A single error becomes its formatted message; several errors are
    rendered as a developer report.
    """

    def __init__(self, errors: Sequence[AgentError], message: str | None = None) -> None:
        if message is None:
            if len(errors) == 1:
                message = format_agent_error(errors[0])
            else:
                message = "Agent processing failed:\n\n" + format_agent_errors_for_developer(
                    errors
                )
        super().__init__(errors, message)


class AgentDefinitionError(AgentProcessingError):
    """Raised by define_agent when the agent definition is invalid."""


def raise_for_failure(result: Result[Any, Any]) -> Any:
    """Return the success payload of *result*, or raise AgentProcessingError.

    Accepts results whose error is an ``ExecuteFailure`` (anything with an
    ``errors`` attribute) or a plain list of agent errors.

    Raises:
        AgentProcessingError: If *result* is an ``Err``.
    """
    if isinstance(result, Err):
        error = result.error
        errors = getattr(error, "errors", error)
        raise AgentProcessingError(list(errors))
    return result.data
