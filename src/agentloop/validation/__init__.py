"""Multi-layer output validation with mutation protection."""

from agentloop.validation.format import (
    format_validation_error_for_prompt,
    format_validation_errors_for_model,
)
from agentloop.validation.freeze import (
    FrozenDict,
    FrozenInstanceError,
    FrozenList,
    deep_freeze,
    is_frozen_object,
    is_mutation_error,
)
from agentloop.validation.layers import MUTATION_REASON, validate_layers
from agentloop.validation.types import (
    LayerType,
    ValidationLayer,
    ValidationLayerCallbacks,
    ValidationLayerFailure,
    ValidationLayerMetadata,
    ValidationLayerResult,
    ValidationLayerSuccess,
)
from agentloop.validation.validators import (
    SCHEMA_LAYER_METADATA,
    CustomValidator,
    create_custom_validator,
    output_json_schema,
    validate_with_schema,
)

__all__ = [
    "MUTATION_REASON",
    "SCHEMA_LAYER_METADATA",
    "CustomValidator",
    "FrozenDict",
    "FrozenInstanceError",
    "FrozenList",
    "LayerType",
    "ValidationLayer",
    "ValidationLayerCallbacks",
    "ValidationLayerFailure",
    "ValidationLayerMetadata",
    "ValidationLayerResult",
    "ValidationLayerSuccess",
    "create_custom_validator",
    "deep_freeze",
    "format_validation_error_for_prompt",
    "format_validation_errors_for_model",
    "is_frozen_object",
    "is_mutation_error",
    "output_json_schema",
    "validate_layers",
    "validate_with_schema",
]
