"""Rendering validation failures as feedback for the model."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from agentloop.errors.contexts import ValidationFailedContext
from agentloop.errors.formatter import (
    format_agent_errors_for_developer,
    is_agent_error_array,
)
from agentloop.errors.structured import safe_stringify


def _format_location(loc: tuple[Any, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path


def format_validation_errors_for_model(error: ValidationError) -> str:
    """Render a pydantic ValidationError as a compact issue list.

    Usage::

        ## Errors (2)
        ✖ Input should be a valid string
          → at result
        ✖ Input should be a valid number
          → at value
    """
    issues = error.errors(include_url=False)
    lines = [f"## Errors ({len(issues)})"]
    for issue in issues:
        lines.append(f"✖ {issue['msg']}")
        location = _format_location(tuple(issue.get("loc", ())))
        if location:
            lines.append(f"  → at {location}")
    return "\n".join(lines)


def format_validation_error_for_prompt(
    error: Any,
    layer_name: str,
    layer_description: str,
) -> str:
    """Render any validation layer error, prefixed with the layer it came from.

    Args:
        error: Whatever the failing layer produced: a pydantic
            ``ValidationError``, a list of agent errors, an exception, a
            ``ValidationFailedContext``, or any other value.
        layer_name: Name of the failing layer.
        layer_description: Description of the failing layer.

    Returns:
        Text suitable for the error prompt of the next attempt.
    """
    if isinstance(error, ValidationError):
        formatted = format_validation_errors_for_model(error)
    elif is_agent_error_array(error):
        formatted = format_agent_errors_for_developer(error)
    elif isinstance(error, ValidationFailedContext):
        formatted = error.reason or "Validation failed"
    elif isinstance(error, BaseException):
        formatted = str(error) or type(error).__name__
    elif isinstance(error, str):
        formatted = error
    else:
        formatted = safe_stringify(error)

    return (
        f"The following errors occurred during {layer_name}:\n"
        f"{layer_description}\n\n{formatted}"
    )
