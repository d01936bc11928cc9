"""CLI tests for agentloop -- check and run via Click's CliRunner.

The run command's OpenAI caller is replaced by a ScriptedCaller, so no
network access is needed.
"""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from agentloop.cli import cli
from agentloop.definition import define_agent
from tests.conftest import (
    GOOD_OUTPUT,
    ScriptedCaller,
    make_agent,
    output_call,
    text_turn,
    tool_turn,
)

# Importable targets used by the tests below.
bad_agent = make_agent(name="", max_attempts=0)
no_iterations_agent = make_agent(max_iterations=0)
not_an_agent = 42


def raising_factory():
    return define_agent(make_agent(name=""))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def scripted(monkeypatch):
    """Route the run command to a ScriptedCaller. Returns a setter for its turns."""
    holder: dict = {}

    def install(turns):
        caller = ScriptedCaller(turns)
        holder["caller"] = caller
        monkeypatch.setattr(
            "agentloop.cli.commands.run.OpenAIModelCaller", lambda **kwargs: caller
        )
        return caller

    return install


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    def test_valid_definition(self, runner):
        result = runner.invoke(cli, ["check", "tests.conftest:cli_agent"])
        assert result.exit_code == 0, result.output
        assert "OK" in result.output
        assert "answerer" in result.output

    def test_invalid_definition(self, runner):
        result = runner.invoke(cli, ["check", "tests.test_cli:bad_agent"])
        assert result.exit_code == 1
        assert "EMPTY_NAME" in result.output
        assert "INVALID_MAX_ATTEMPTS" in result.output

    def test_factory_raising_definition_error(self, runner):
        result = runner.invoke(cli, ["check", "tests.test_cli:raising_factory"])
        assert result.exit_code == 1
        assert "EMPTY_NAME" in result.output

    def test_missing_attribute(self, runner):
        result = runner.invoke(cli, ["check", "tests.conftest:nope"])
        assert result.exit_code == 1
        assert "has no attribute" in result.output

    def test_malformed_target(self, runner):
        result = runner.invoke(cli, ["check", "no_colon_here"])
        assert result.exit_code == 1
        assert "MODULE:ATTR" in result.output

    def test_not_a_definition(self, runner):
        result = runner.invoke(cli, ["check", "tests.test_cli:not_an_agent"])
        assert result.exit_code == 1
        assert "not an AgentDefinition" in result.output


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


class TestRun:
    def test_success_prints_output_and_metadata(self, runner, scripted):
        caller = scripted([tool_turn(output_call(GOOD_OUTPUT))])
        result = runner.invoke(
            cli, ["run", "tests.conftest:cli_agent", "--input", '{"question": "6 x 7"}']
        )
        assert result.exit_code == 0, result.output
        assert '"result": "success"' in result.output
        assert "Attempts" in result.output
        assert "Tokens" in result.output
        assert caller.requests[0].user == "task: {'question': '6 x 7'}"
        assert caller.closed

    def test_failure_prints_errors(self, runner, scripted):
        scripted([text_turn("no tool today")])
        result = runner.invoke(cli, ["run", "tests.conftest:cli_agent"])
        assert result.exit_code == 1
        assert "OUTPUT_TOOL_NOT_USED" in result.output

    def test_model_override(self, runner, scripted):
        caller = scripted([tool_turn(output_call(GOOD_OUTPUT))])
        result = runner.invoke(
            cli, ["run", "tests.conftest:cli_agent", "--model", "gpt-4o", "--timeout", "30"]
        )
        assert result.exit_code == 0, result.output
        assert caller.requests[0].model.name == "gpt-4o"

    def test_max_attempts_option(self, runner, scripted):
        scripted([tool_turn(output_call({"result": 1}))])
        result = runner.invoke(
            cli, ["run", "tests.conftest:cli_agent", "--max-attempts", "1"]
        )
        assert result.exit_code == 1
        assert "MAX_ATTEMPTS_EXCEEDED" in result.output

    def test_invalid_max_attempts_option(self, runner):
        result = runner.invoke(cli, ["run", "tests.conftest:cli_agent", "--max-attempts", "0"])
        assert result.exit_code == 2

    def test_invalid_input_json(self, runner, scripted):
        scripted([])
        result = runner.invoke(cli, ["run", "tests.conftest:cli_agent", "--input", "{oops"])
        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_missing_api_key(self, runner, monkeypatch):
        monkeypatch.delenv("AGENTLOOP_API_KEY", raising=False)
        result = runner.invoke(cli, ["run", "tests.conftest:cli_agent"])
        assert result.exit_code == 1
        assert "No API key provided" in result.output

    def test_invalid_definition_not_executed(self, runner, scripted):
        caller = scripted([tool_turn(output_call(GOOD_OUTPUT))])
        result = runner.invoke(cli, ["run", "tests.test_cli:bad_agent"])
        assert result.exit_code == 1
        assert "EMPTY_NAME" in result.output
        assert "INVALID_MAX_ATTEMPTS" in result.output
        assert caller.requests == []

    def test_zero_iterations_reported_not_raised(self, runner, scripted):
        caller = scripted([tool_turn(output_call(GOOD_OUTPUT))])
        result = runner.invoke(cli, ["run", "tests.test_cli:no_iterations_agent"])
        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "INVALID_MAX_ITERATIONS" in result.output
        assert caller.requests == []

    def test_blank_model_override_rejected(self, runner, scripted):
        caller = scripted([tool_turn(output_call(GOOD_OUTPUT))])
        result = runner.invoke(cli, ["run", "tests.conftest:cli_agent", "--model", " "])
        assert result.exit_code == 1
        assert "EMPTY_MODEL_NAME" in result.output
        assert caller.requests == []


# ---------------------------------------------------------------------------
# Output layout
# ---------------------------------------------------------------------------


class TestOutputLayout:
    def test_long_messages_stay_on_one_line(self, runner):
        attr = "an_attribute_name_long_enough_to_push_the_message_past_eighty_columns"
        result = runner.invoke(cli, ["check", f"tests.test_cli:{attr}"])
        assert result.exit_code == 1
        assert f"'tests.test_cli' has no attribute '{attr}'" in result.output
