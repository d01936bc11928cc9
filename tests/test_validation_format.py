"""Tests for rendering validation failures as model feedback."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, ValidationError

from agentloop.errors import AgentErrorCode, EmptyValueContext, agent_error
from agentloop.errors.contexts import ValidationFailedContext
from agentloop.validation import (
    format_validation_error_for_prompt,
    format_validation_errors_for_model,
)
from tests.conftest import Answer


class Line(BaseModel):
    quantity: int


class Invoice(BaseModel):
    items: list[Line]


def _validation_error(model, data) -> ValidationError:
    with pytest.raises(ValidationError) as info:
        model.model_validate(data)
    return info.value


class TestFormatForModel:
    def test_issue_list(self):
        error = _validation_error(Answer, {"result": 123, "value": "wrong"})
        text = format_validation_errors_for_model(error)
        lines = text.splitlines()
        assert lines[0] == "## Errors (2)"
        assert lines[1].startswith("✖ ")
        assert lines[2] == "  → at result"
        assert lines[4] == "  → at value"

    def test_nested_location(self):
        error = _validation_error(Invoice, {"items": [{"quantity": "many"}]})
        text = format_validation_errors_for_model(error)
        assert "  → at items[0].quantity" in text


class TestFormatForPrompt:
    HEADER = "The following errors occurred during quality:\nChecks quality\n\n"

    def test_validation_error(self):
        error = _validation_error(Answer, {})
        text = format_validation_error_for_prompt(error, "quality", "Checks quality")
        assert text.startswith(self.HEADER + "## Errors (2)")

    def test_exception(self):
        text = format_validation_error_for_prompt(
            ValueError("too short"), "quality", "Checks quality"
        )
        assert text == self.HEADER + "too short"

    def test_exception_without_message(self):
        text = format_validation_error_for_prompt(KeyError(), "quality", "Checks quality")
        assert text == self.HEADER + "KeyError"

    def test_mutation_context(self):
        context = ValidationFailedContext(
            layer="quality", reason="Validator attempted to mutate input."
        )
        text = format_validation_error_for_prompt(context, "quality", "Checks quality")
        assert text == self.HEADER + "Validator attempted to mutate input."

    def test_agent_errors(self):
        errors = [agent_error(AgentErrorCode.EMPTY_NAME, EmptyValueContext())]
        text = format_validation_error_for_prompt(errors, "quality", "Checks quality")
        assert text == self.HEADER + "## Errors (1)\n- Agent name must be a non-empty string"

    def test_string_and_other_values(self):
        assert format_validation_error_for_prompt("plain", "q", "d").endswith("\n\nplain")
        assert format_validation_error_for_prompt({"k": 1}, "q", "d").endswith('\n\n{"k": 1}')
