"""Schema validation and custom validator construction."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from agentloop.result import Result, err, ok
from agentloop.validation.freeze import is_mutation_error
from agentloop.validation.types import LayerType, ValidationLayerMetadata

logger = logging.getLogger(__name__)

SCHEMA_LAYER_METADATA = ValidationLayerMetadata(
    name="schema",
    description="Validates the output structure and field types against the output schema",
    type=LayerType.SCHEMA,
)


@lru_cache(maxsize=128)
def _adapter(schema: Any) -> TypeAdapter:
    return TypeAdapter(schema)


def _is_model_class(schema: Any) -> bool:
    return isinstance(schema, type) and issubclass(schema, BaseModel)


def validate_with_schema(output: Any, schema: Any) -> Result[Any, ValidationError]:
    """Validate *output* against a pydantic model or any type annotation.

    Args:
        output: Raw value, usually the output tool's arguments.
        schema: A ``BaseModel`` subclass, or any type pydantic can build a
            ``TypeAdapter`` for (``dict[str, int]``, a TypedDict, a dataclass).

    Returns:
        ``Ok`` with the validated value, or ``Err`` with the
        ``pydantic.ValidationError``.
    """
    try:
        if _is_model_class(schema):
            return ok(schema.model_validate(output))
        try:
            adapter = _adapter(schema)
        except TypeError:
            # Unhashable annotations cannot be cached.
            adapter = TypeAdapter(schema)
        return ok(adapter.validate_python(output))
    except ValidationError as exc:
        return err(exc)


def output_json_schema(schema: Any) -> dict:
    """Return the JSON Schema advertised as the output tool's parameters."""
    if _is_model_class(schema):
        return schema.model_json_schema()
    try:
        return _adapter(schema).json_schema()
    except TypeError:
        return TypeAdapter(schema).json_schema()


@dataclass(frozen=True)
class CustomValidator:
    """A validation layer built from a validate-or-raise function.

    The function passes by returning normally and fails by raising.
    Writes to the frozen output are re-raised so the pipeline reports them
    as mutations of the input.
    """

    name: str
    fn: Callable[[Any], Any]
    description: str = ""

    async def validate(self, output: Any) -> Result[Any, Any]:
        try:
            outcome = self.fn(output)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            if is_mutation_error(exc):
                raise
            logger.debug("Validator %s rejected output: %s", self.name, exc)
            return err(exc)
        return ok(output)


def create_custom_validator(
    name: str,
    fn: Callable[[Any], None | Awaitable[None]],
    description: str = "",
) -> CustomValidator:
    """Wrap a validate-or-raise function as a validation layer.

    Usage::

        def positive_total(output):
            if output.total <= 0:
                raise ValueError("total must be positive")

        layer = create_custom_validator("positive-total", positive_total)
    """
    return CustomValidator(name=name, fn=fn, description=description)
