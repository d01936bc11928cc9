"""Validation layer protocol and the per-layer result records."""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from agentloop.result import Result


class LayerType(str, enum.Enum):
    SCHEMA = "schema"
    CUSTOM = "custom"


@runtime_checkable
class ValidationLayer(Protocol):
    """One custom stage of the validation pipeline.

    ``validate`` receives the deep-frozen, schema-validated output and
    returns ``Ok(output)`` to pass or ``Err(error)`` to fail. It may be a
    plain function or a coroutine function. Any attempt to modify the
    output raises and is reported as a mutation failure naming the layer.
    """

    name: str
    description: str

    def validate(self, output: Any) -> Result[Any, Any] | Awaitable[Result[Any, Any]]: ...


@dataclass(frozen=True)
class ValidationLayerMetadata:
    name: str
    description: str
    type: LayerType


@dataclass(frozen=True)
class ValidationLayerSuccess:
    metadata: ValidationLayerMetadata

    @property
    def success(self) -> bool:
        return True

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass(frozen=True)
class ValidationLayerFailure:
    metadata: ValidationLayerMetadata
    error: Any

    @property
    def success(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return self.metadata.name


ValidationLayerResult = Union[ValidationLayerSuccess, ValidationLayerFailure]


@dataclass(frozen=True)
class ValidationLayerCallbacks:
    """Observability hooks fired around every layer.

    Both hooks are informational. An exception raised inside one is
    logged and ignored.
    """

    on_layer_start: Callable[[ValidationLayerMetadata], Any] | None = None
    on_layer_complete: Callable[[ValidationLayerResult], Any] | None = None
