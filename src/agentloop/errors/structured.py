"""Generic structured errors and the formatting helpers shared by all domains.

A structured error is a plain value: ``{code, severity, category, context}``
plus optional ``path``/``suggestion`` metadata. These helpers know nothing
about specific codes; per-domain formatters (see ``formatter.py``) build
on them.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from agentloop.errors.codes import ErrorSeverity

CodeT = TypeVar("CodeT")
CategoryT = TypeVar("CategoryT")
ContextT = TypeVar("ContextT")

DEFAULT_MAX_LENGTH = 100
ELLIPSIS = "..."
UNSTRINGIFIABLE = "(unstringifiable)"


@dataclass(frozen=True)
class StructuredError(Generic[CodeT, CategoryT, ContextT]):
    """One failure condition and the facts needed to explain it.

    Attributes:
        code: Discriminator. Determines the type of ``context``.
        severity: ``error`` or ``warning``.
        category: Broad area the failure belongs to.
        context: Frozen record with the facts for ``code``.
        path: Optional location of the problem (e.g. ``$.model.name``).
        suggestion: Optional hint on how to fix the problem.
    """

    code: CodeT
    severity: ErrorSeverity
    category: CategoryT
    context: ContextT
    path: str | None = None
    suggestion: str | None = None


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if hasattr(value, "model_dump"):
        return value.model_dump()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def truncate(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Cap *text* at *max_length* characters, marking the cut with ``...``."""
    if len(text) > max_length:
        return text[:max_length] + ELLIPSIS
    return text


def safe_stringify(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """JSON-encode *value* and truncate it.

    Dataclasses, sets and pydantic models are encoded through their
    natural dict/list form. Anything that still cannot be encoded
    (cycles, arbitrary objects) yields ``(unstringifiable)``.
    """
    try:
        text = json.dumps(value, default=_json_default, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return UNSTRINGIFIABLE
    return truncate(text, max_length)


def format_value(value: Any, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Render a free-form value for inclusion in a message.

    Strings are truncated as-is; everything else goes through
    ``safe_stringify``.
    """
    if isinstance(value, str):
        return truncate(value, max_length)
    return safe_stringify(value, max_length)


def format_list(
    items: Sequence[str] | None,
    separator: str = " | ",
    empty_text: str = "(none available)",
) -> str:
    """Render *items* as a quoted list, or *empty_text* when there are none."""
    if not items:
        return empty_text
    return separator.join(f'"{item}"' for item in items)


def format_unknown_error(code: Any, context: Any) -> str:
    """Fallback rendering for a code without a dedicated template."""
    message = f"[{getattr(code, 'value', code)}]"
    if dataclasses.is_dataclass(context) and not isinstance(context, type):
        context = dataclasses.asdict(context)
    try:
        message += "\n  " + json.dumps(context, indent=2, default=_json_default)
    except (TypeError, ValueError, RecursionError):
        message += "\n  (context unavailable)"
    return message


def append_metadata(
    message: str,
    path: str | None = None,
    suggestion: str | None = None,
) -> str:
    """Append `` at <path>`` and ``. <suggestion>`` to *message* when present."""
    if path:
        message += f" at {path}"
    if suggestion:
        message += f". {suggestion}"
    return message


def format_errors_by_severity(
    errors: Sequence[StructuredError],
    format_error: Callable[[StructuredError], str],
    section_format: Literal["markdown", "text"] = "markdown",
) -> str:
    """Group *errors* into bulleted sections, errors before warnings.

    Args:
        errors: Structured errors to render.
        format_error: Renders a single error to one line.
        section_format: ``markdown`` gives ``## Errors (n)`` headers,
            ``text`` gives ``ERRORS (n)``.

    Returns:
        Sections joined by a blank line, or ``""`` for no errors.
    """
    if not errors:
        return ""

    sections: list[str] = []
    for severity, label in (
        (ErrorSeverity.ERROR, "Errors"),
        (ErrorSeverity.WARNING, "Warnings"),
    ):
        group = [e for e in errors if e.severity == severity]
        if not group:
            continue
        if section_format == "markdown":
            header = f"## {label} ({len(group)})"
        else:
            header = f"{label.upper()} ({len(group)})"
        lines = [header] + [f"- {format_error(e)}" for e in group]
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def is_structured_error(value: Any) -> bool:
    return isinstance(value, StructuredError)


def is_structured_error_array(value: Any) -> bool:
    """Return True for a non-empty list/tuple made only of structured errors."""
    if not isinstance(value, (list, tuple)) or not value:
        return False
    return all(isinstance(item, StructuredError) for item in value)
