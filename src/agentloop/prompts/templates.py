"""``string.Template`` prompt generators.

A ``PromptTemplate`` can be used for any of the three prompt kinds. Its
placeholders are filled from the first argument (a mapping, a pydantic
model, or any other value exposed as ``$data``) and, when present, from
the execution context (``$attempt``, ``$max_attempts``, ``$iteration``,
``$max_iterations``). A missing placeholder raises ``KeyError``, which the
prompt builder reports as a prompt generation failure.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from pathlib import Path
from string import Template
from typing import Any

from pydantic import BaseModel

from agentloop.context import ExecutionContext
from agentloop.result import Result, err, ok


def _template_values(data: Any, context: ExecutionContext | None) -> dict[str, Any]:
    values: dict[str, Any] = {"data": data}
    if isinstance(data, BaseModel):
        values.update(data.model_dump())
    elif isinstance(data, Mapping):
        values.update({str(k): v for k, v in data.items()})
    if context is not None:
        values.update(dataclasses.asdict(context))
    return values


class PromptTemplate:
    """Callable prompt generator backed by a ``string.Template``.

    Usage::

        prompts = PromptsConfig(
            system=PromptTemplate("You are attempt $attempt of $max_attempts."),
            user=PromptTemplate("Summarise: $text"),
            error=PromptTemplate("Fix these problems:\\n$data"),
        )
    """

    def __init__(self, source: str) -> None:
        self.source = source
        self._template = Template(source)

    def __call__(self, data: Any, *args: Any) -> str:
        context = next((a for a in args if isinstance(a, ExecutionContext)), None)
        return self._template.substitute(_template_values(data, context))

    def __repr__(self) -> str:
        return f"PromptTemplate({self.source[:40]!r})"


def compile_template(source: str) -> Result[PromptTemplate, ValueError]:
    """Compile *source*, rejecting malformed placeholders up front."""
    template = PromptTemplate(source)
    if not template._template.is_valid():
        return err(ValueError(f"Invalid placeholder in prompt template: {source[:40]!r}"))
    return ok(template)


def load_template(path: str | Path) -> Result[PromptTemplate, Exception]:
    """Read a template file and compile it."""
    try:
        source = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        return err(exc)
    return compile_template(source)
