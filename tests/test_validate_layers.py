"""Tests for the layered validation pipeline.

Tests cover:
- Schema layer failures stop the pipeline before any custom layer
- Custom layers run in order and the first failure wins
- Mutation attempts are reported against the offending layer
- Layer callbacks fire around every executed layer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest
from pydantic import ValidationError

from agentloop.errors.contexts import ValidationFailedContext
from agentloop.result import Err, Ok, err, ok
from agentloop.validation import (
    MUTATION_REASON,
    LayerType,
    ValidationLayerCallbacks,
    ValidationLayerFailure,
    ValidationLayerSuccess,
    create_custom_validator,
    validate_layers,
)
from tests.conftest import Answer

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class RecordingLayer:
    """Custom layer that logs its name and returns a fixed outcome."""

    def __init__(self, name: str, log: list[str], error: Any = None) -> None:
        self.name = name
        self.description = f"{name} layer"
        self._log = log
        self._error = error

    def validate(self, output):
        self._log.append(self.name)
        if self._error is not None:
            return err(self._error)
        return ok(output)


class AsyncLayer(RecordingLayer):
    async def validate(self, output):
        return super().validate(output)


class MutatingLayer:
    def __init__(self, name: str, mutate) -> None:
        self.name = name
        self.description = "tries to write"
        self._mutate = mutate

    def validate(self, output):
        self._mutate(output)
        return ok(output)


GOOD = {"result": "success", "value": 42}


# ---------------------------------------------------------------------------
# Schema layer
# ---------------------------------------------------------------------------


class TestSchemaLayer:
    async def test_schema_failure_skips_custom_layers(self):
        log: list[str] = []
        result = await validate_layers(
            {"result": 123, "value": "wrong"}, Answer, [RecordingLayer("first", log)]
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, ValidationError)
        assert log == []

    async def test_schema_only_pass(self):
        result = await validate_layers(GOOD, Answer)
        assert isinstance(result, Ok)
        assert result.data == Answer(result="success", value=42)

    async def test_type_annotation_schema(self):
        result = await validate_layers({"a": 1}, dict[str, int])
        assert result == ok({"a": 1})

    async def test_annotation_schema_failure(self):
        result = await validate_layers({"a": "x"}, dict[str, int])
        assert isinstance(result.error, ValidationError)


# ---------------------------------------------------------------------------
# Custom layers
# ---------------------------------------------------------------------------


class TestCustomLayers:
    async def test_all_pass_returns_validated_output(self):
        log: list[str] = []
        layers = [RecordingLayer("first", log), AsyncLayer("second", log)]
        result = await validate_layers(GOOD, Answer, layers)
        assert isinstance(result, Ok)
        assert result.data == Answer(**GOOD)
        assert log == ["first", "second"]

    async def test_first_failure_stops_pipeline(self):
        log: list[str] = []
        layers = [
            RecordingLayer("first", log),
            RecordingLayer("second", log, error="boom"),
            RecordingLayer("third", log),
        ]
        result = await validate_layers(GOOD, Answer, layers)
        assert result == err("boom")
        assert log == ["first", "second"]

    async def test_raising_validator_error_returned(self):
        def no_negatives(output):
            if output.value < 100:
                raise ValueError("value too small")

        result = await validate_layers(
            GOOD, Answer, [create_custom_validator("minimum", no_negatives)]
        )
        assert isinstance(result.error, ValueError)
        assert str(result.error) == "value too small"

    async def test_async_raising_validator(self):
        async def check(output):
            raise RuntimeError("remote check failed")

        result = await validate_layers(GOOD, Answer, [create_custom_validator("remote", check)])
        assert str(result.error) == "remote check failed"

    async def test_non_result_return_is_failure(self):
        class Sloppy:
            name = "sloppy"
            description = ""

            def validate(self, output):
                return True

        result = await validate_layers(GOOD, Answer, [Sloppy()])
        assert isinstance(result.error, TypeError)
        assert "sloppy" in str(result.error)

    async def test_layers_see_same_frozen_object(self):
        seen = []

        class Capture:
            description = ""

            def __init__(self, name):
                self.name = name

            def validate(self, output):
                seen.append(output)
                return ok(output)

        result = await validate_layers(GOOD, Answer, [Capture("a"), Capture("b")])
        assert seen[0] is seen[1]
        assert result.data is seen[0]

    async def test_idempotent(self):
        layers = [RecordingLayer("first", [])]
        first = await validate_layers(GOOD, Answer, layers)
        second = await validate_layers(GOOD, Answer, layers)
        assert first == second


# ---------------------------------------------------------------------------
# Mutation detection
# ---------------------------------------------------------------------------


def _set_value(output):
    output.value = 0


def _nested_write(output):
    output["items"][0]["qty"] = 99


def _list_append(output):
    output["items"].append({"qty": 1})


def _list_element_write(output):
    output["items"][0] = {"qty": 99}


@dataclass(slots=True)
class SlottedOrder:
    id: int
    items: list[int] = field(default_factory=list)


def _slotted_write(output):
    output.id = 2


def _slotted_list_append(output):
    output.items.append(3)


class TestMutationDetection:
    @pytest.mark.parametrize(
        "schema,raw,mutate",
        [
            (Answer, {"result": "ok", "value": 1}, _set_value),
            (dict[str, Any], {"items": [{"qty": 1}]}, _nested_write),
            (dict[str, Any], {"items": [{"qty": 1}]}, _list_append),
            (dict[str, Any], {"items": [{"qty": 1}]}, _list_element_write),
            (SlottedOrder, {"id": 1, "items": [1]}, _slotted_write),
            (SlottedOrder, {"id": 1, "items": [1]}, _slotted_list_append),
        ],
        ids=["top-level", "nested", "list", "list-element", "slotted", "slotted-list"],
    )
    async def test_write_reported_as_mutation(self, schema, raw, mutate):
        before = repr(raw)
        result = await validate_layers(raw, schema, [MutatingLayer("sneaky", mutate)])
        assert isinstance(result, Err)
        assert isinstance(result.error, ValidationFailedContext)
        assert result.error.layer == "sneaky"
        assert "mutate input" in result.error.reason
        assert result.error.reason == MUTATION_REASON
        assert repr(raw) == before

    async def test_custom_validator_mutation_detected(self):
        def sneaky(output):
            output.result = "changed"

        result = await validate_layers(GOOD, Answer, [create_custom_validator("fixer", sneaky)])
        assert result.error.layer == "fixer"

    async def test_later_layers_not_run_after_mutation(self):
        log: list[str] = []
        result = await validate_layers(
            GOOD,
            Answer,
            [MutatingLayer("sneaky", _set_value), RecordingLayer("after", log)],
        )
        assert isinstance(result, Err)
        assert log == []


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


class TestLayerCallbacks:
    def _callbacks(self, events: list):
        return ValidationLayerCallbacks(
            on_layer_start=lambda meta: events.append(("start", meta.name, meta.type)),
            on_layer_complete=lambda res: events.append(("done", res.name, res.success)),
        )

    async def test_events_for_every_layer(self):
        events: list = []
        await validate_layers(
            GOOD, Answer, [RecordingLayer("first", [])], self._callbacks(events)
        )
        assert events == [
            ("start", "schema", LayerType.SCHEMA),
            ("done", "schema", True),
            ("start", "first", LayerType.CUSTOM),
            ("done", "first", True),
        ]

    async def test_failure_result_carries_error(self):
        results = []
        callbacks = ValidationLayerCallbacks(on_layer_complete=results.append)
        await validate_layers(
            GOOD, Answer, [RecordingLayer("first", [], error="bad")], callbacks
        )
        assert isinstance(results[0], ValidationLayerSuccess)
        assert isinstance(results[1], ValidationLayerFailure)
        assert results[1].error == "bad"

    async def test_schema_failure_event(self):
        events: list = []
        await validate_layers({}, Answer, [RecordingLayer("x", [])], self._callbacks(events))
        assert events == [("start", "schema", LayerType.SCHEMA), ("done", "schema", False)]

    async def test_callback_exceptions_ignored(self):
        def explode(_):
            raise RuntimeError("observer broke")

        callbacks = ValidationLayerCallbacks(on_layer_start=explode, on_layer_complete=explode)
        result = await validate_layers(GOOD, Answer, [RecordingLayer("first", [])], callbacks)
        assert isinstance(result, Ok)
