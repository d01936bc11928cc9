"""The sequential, fail-fast validation pipeline.

Order of layers for one call of ``validate_layers``:

1. Schema layer: pydantic validation of the raw output.
2. Deep freeze of the validated value.
3. Custom layers, strictly in the order given, each seeing the same
   frozen object.

The first failing layer ends the pipeline. Its error is returned as-is,
except for writes to the frozen output, which become a
``ValidationFailedContext`` naming the offending layer.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import Any

from agentloop.errors.contexts import ValidationFailedContext
from agentloop.result import Err, Ok, Result, err, ok
from agentloop.validation.freeze import deep_freeze, is_mutation_error
from agentloop.validation.types import (
    LayerType,
    ValidationLayer,
    ValidationLayerCallbacks,
    ValidationLayerFailure,
    ValidationLayerMetadata,
    ValidationLayerSuccess,
)
from agentloop.validation.validators import SCHEMA_LAYER_METADATA, validate_with_schema

logger = logging.getLogger(__name__)

MUTATION_REASON = (
    "Validator attempted to mutate input. Validators must not modify the input object."
)


def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logger.debug("Validation layer callback error", exc_info=True)


def _layer_metadata(layer: ValidationLayer) -> ValidationLayerMetadata:
    return ValidationLayerMetadata(
        name=layer.name,
        description=getattr(layer, "description", "") or "",
        type=LayerType.CUSTOM,
    )


async def _run_layer(layer: ValidationLayer, frozen_output: Any) -> Result[Any, Any]:
    outcome = layer.validate(frozen_output)
    if inspect.isawaitable(outcome):
        outcome = await outcome
    if not isinstance(outcome, (Ok, Err)):
        return err(
            TypeError(
                f"Validator {layer.name!r} returned {type(outcome).__name__}, "
                "expected Ok or Err"
            )
        )
    return outcome


async def validate_layers(
    raw_output: Any,
    schema: Any,
    custom_validators: Sequence[ValidationLayer] = (),
    callbacks: ValidationLayerCallbacks | None = None,
) -> Result[Any, Any]:
    """Run the schema layer and then every custom layer, stopping at the first failure.

    Args:
        raw_output: Unvalidated output, typically the output tool's arguments.
        schema: pydantic model or type annotation for the schema layer.
        custom_validators: Layers run in order on the frozen output.
        callbacks: Optional start/complete hooks fired around every layer.

    Returns:
        ``Ok`` with the validated, deep-frozen output, or ``Err`` with the
        first failing layer's error. The schema layer fails with a
        ``pydantic.ValidationError``.
    """
    on_start = callbacks.on_layer_start if callbacks else None
    on_complete = callbacks.on_layer_complete if callbacks else None

    _notify(on_start, SCHEMA_LAYER_METADATA)
    schema_result = validate_with_schema(raw_output, schema)
    if isinstance(schema_result, Err):
        logger.debug("Schema layer failed: %s", schema_result.error)
        _notify(on_complete, ValidationLayerFailure(SCHEMA_LAYER_METADATA, schema_result.error))
        return schema_result
    _notify(on_complete, ValidationLayerSuccess(SCHEMA_LAYER_METADATA))

    frozen_output = deep_freeze(schema_result.data)

    for layer in custom_validators:
        metadata = _layer_metadata(layer)
        _notify(on_start, metadata)
        try:
            result = await _run_layer(layer, frozen_output)
        except Exception as exc:
            if is_mutation_error(exc):
                logger.warning("Validator %s attempted to mutate its input", layer.name)
                error: Any = ValidationFailedContext(layer=layer.name, reason=MUTATION_REASON)
            else:
                logger.debug("Validator %s raised", layer.name, exc_info=True)
                error = exc
            _notify(on_complete, ValidationLayerFailure(metadata, error))
            return err(error)

        if isinstance(result, Err):
            logger.debug("Validator %s failed: %s", layer.name, result.error)
            _notify(on_complete, ValidationLayerFailure(metadata, result.error))
            return result
        _notify(on_complete, ValidationLayerSuccess(metadata))

    return ok(frozen_output)
