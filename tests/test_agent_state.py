"""Tests for run/attempt state threaded through stateful helper tools.

Tests cover:
- State updates flowing from one helper call to the next
- Handlers called directly, outside any execution
- Failed handlers (Err, exception, unknown tool) leaving state untouched
- Custom initial run/attempt state
- Attempt state reset between attempts; no sharing between executions
"""

from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel

from agentloop.context import ExecutionContext
from agentloop.definition import AgentState, HelperTool, StateUpdate
from agentloop.llm.models import ToolResultMessage
from agentloop.orchestrator import AgentExecutor, ExecuteCallbacks, apply_update
from agentloop.result import Ok, err
from tests.conftest import (
    BAD_OUTPUT,
    GOOD_OUTPUT,
    ScriptedCaller,
    make_agent,
    output_call,
    tool_call,
    tool_turn,
)

CTX = ExecutionContext(attempt=1, max_attempts=3)


# ---------------------------------------------------------------------------
# Stateful helpers
# ---------------------------------------------------------------------------


class ParseArgs(BaseModel):
    text: str


class QueryArgs(BaseModel):
    index: int


def _parse(state: AgentState, text: str):
    words = text.split()
    return StateUpdate(
        result={"words": len(words)},
        run={"words": words},
        attempt={**state.attempt, "calls": state.attempt.get("calls", 0) + 1},
    )


def _query(state: AgentState, index: int):
    if "words" not in state.run:
        return err("Cannot query: data has not been parsed yet. Call parse first.")
    return StateUpdate(
        result=state.run["words"][index],
        attempt={**state.attempt, "calls": state.attempt.get("calls", 0) + 1},
    )


def _count(state: AgentState):
    return StateUpdate(
        result="counted",
        run={"runs": state.run.get("runs", 0) + 1},
        attempt={"count": state.attempt.get("count", 0) + 1},
    )


def _boom(state: AgentState):
    raise RuntimeError("handler exploded")


PARSE = HelperTool("parse", "Parse text", _parse, input_model=ParseArgs, stateful=True)
QUERY = HelperTool("query", "Query parsed words", _query, input_model=QueryArgs, stateful=True)
COUNT = HelperTool("count", "Count a call", _count, stateful=True)
BOOM = HelperTool("boom", "Always raises", _boom, stateful=True)


def _snapshot_tool(seen: list[AgentState]) -> HelperTool:
    def snapshot(state: AgentState):
        seen.append(state)
        return "ok"

    return HelperTool("snapshot", "Record the current state", snapshot, stateful=True)


def _tool_results(request) -> list[ToolResultMessage]:
    return [e for e in request.exchanges if isinstance(e, ToolResultMessage)]


async def _run(agent, turns, input=None, **kwargs):
    caller = ScriptedCaller(turns)
    result = await AgentExecutor(agent, caller).run(
        {"question": "q"} if input is None else input, **kwargs
    )
    return result, caller


# ---------------------------------------------------------------------------
# State threading
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestStateThreading:
    async def test_update_visible_to_next_call(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(PARSE, _snapshot_tool(seen)))
        result, _ = await _run(
            agent,
            [
                tool_turn(tool_call("parse", {"text": "a b c"})),
                tool_turn(tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        assert isinstance(result, Ok)
        assert seen[0].run == {"words": ["a", "b", "c"]}
        assert seen[0].attempt == {"calls": 1}

    async def test_dependent_tool_reads_prior_state(self):
        agent = make_agent(helpers=(PARSE, QUERY))
        _, caller = await _run(
            agent,
            [
                tool_turn(
                    tool_call("parse", {"text": "alpha beta"}),
                    tool_call("query", {"index": 1}),
                ),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        results = _tool_results(caller.requests[1])
        assert [r.content for r in results] == ['{"words": 2}', "beta"]
        assert not any(r.is_error for r in results)

    async def test_context_is_current_iteration(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(_snapshot_tool(seen),))
        await _run(
            agent,
            [
                tool_turn(tool_call("snapshot")),
                tool_turn(tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        assert [s.context.iteration for s in seen] == [1, 2]
        assert seen[0].context.attempt == 1


# ---------------------------------------------------------------------------
# Handlers in isolation
# ---------------------------------------------------------------------------


class TestHandlerIsolation:
    def test_handler_called_directly(self):
        state = AgentState(context=CTX, run={}, attempt={})
        update = _parse(state, "x y")
        assert update.result == {"words": 2}
        assert update.run == {"words": ["x", "y"]}

    def test_handler_leaves_input_state_untouched(self):
        state = AgentState(context=CTX, run={"words": ["x"]}, attempt={"calls": 3})
        update = _query(state, 0)
        assert update.attempt == {"calls": 4}
        assert state.attempt == {"calls": 3}
        assert state.run == {"words": ["x"]}

    def test_missing_prerequisite_is_err(self):
        state = AgentState(context=CTX, run={}, attempt={})
        assert "not been parsed" in _query(state, 0).error


class TestApplyUpdate:
    def test_run_dicts_are_merged(self):
        state = AgentState(context=CTX, run={"a": 1, "b": 2}, attempt={"n": 1})
        new = apply_update(state, StateUpdate(result=None, run={"b": 3, "c": 4}))
        assert new.run == {"a": 1, "b": 3, "c": 4}
        assert new.attempt == {"n": 1}
        assert state.run == {"a": 1, "b": 2}

    def test_attempt_is_replaced(self):
        state = AgentState(context=CTX, run={}, attempt={"n": 1, "m": 2})
        new = apply_update(state, StateUpdate(result=None, attempt={"n": 2}))
        assert new.attempt == {"n": 2}

    def test_non_dict_run_is_replaced(self):
        state = AgentState(context=CTX, run=[1], attempt=None)
        new = apply_update(state, StateUpdate(result=None, run=[1, 2]))
        assert new.run == [1, 2]


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestErrorHandling:
    async def test_err_result_fires_callback(self):
        results: list[tuple[str, str]] = []
        callbacks = ExecuteCallbacks(
            on_tool_result=lambda ctx, name, content: results.append((name, content))
        )
        agent = make_agent(helpers=(PARSE, QUERY))
        await _run(
            agent,
            [tool_turn(tool_call("query", {"index": 0})), tool_turn(output_call(GOOD_OUTPUT))],
            callbacks=callbacks,
        )
        assert results[0][0] == "query"
        assert "not been parsed" in results[0][1]

    async def test_calls_after_err_still_work(self):
        agent = make_agent(helpers=(PARSE, QUERY))
        _, caller = await _run(
            agent,
            [
                tool_turn(tool_call("query", {"index": 0}, call_id="q1")),
                tool_turn(
                    tool_call("parse", {"text": "one two"}),
                    tool_call("query", {"index": 0}, call_id="q2"),
                ),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        first, second = _tool_results(caller.requests[1]), _tool_results(caller.requests[2])
        assert first[0].is_error
        assert second[-1].content == "one"
        assert not second[-1].is_error

    async def test_unknown_tool(self):
        agent = make_agent(helpers=(PARSE,))
        _, caller = await _run(
            agent, [tool_turn(tool_call("nope")), tool_turn(output_call(GOOD_OUTPUT))]
        )
        [result] = _tool_results(caller.requests[1])
        assert result.is_error
        assert result.content == "Unknown tool: nope"

    async def test_exception_preserves_state(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(COUNT, BOOM, _snapshot_tool(seen)))
        _, caller = await _run(
            agent,
            [
                tool_turn(tool_call("count"), tool_call("boom"), tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        assert seen[0].run == {"runs": 1}
        assert seen[0].attempt == {"count": 1}
        boom = [r for r in _tool_results(caller.requests[1]) if r.name == "boom"][0]
        assert boom.content == "Error: handler exploded"

    async def test_repeated_exceptions_do_not_corrupt_state(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(COUNT, BOOM, _snapshot_tool(seen)))
        await _run(
            agent,
            [
                tool_turn(tool_call("count"), tool_call("boom", call_id="b1")),
                tool_turn(tool_call("boom", call_id="b2"), tool_call("count")),
                tool_turn(tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        assert seen[0].run == {"runs": 2}
        assert seen[0].attempt == {"count": 2}


# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestInitialState:
    async def test_defaults_are_empty_dicts(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(_snapshot_tool(seen),))
        await _run(agent, [tool_turn(tool_call("snapshot")), tool_turn(output_call(GOOD_OUTPUT))])
        assert seen[0].run == {}
        assert seen[0].attempt == {}

    async def test_initialisers_receive_input_run_and_context(self):
        seen: list[AgentState] = []
        agent = make_agent(
            helpers=(_snapshot_tool(seen),),
            initial_run_state=lambda data: {"source": data["question"]},
            initial_attempt_state=lambda data, run, ctx: {
                "source": run["source"],
                "retrying": ctx.attempt > 1,
            },
        )
        await _run(agent, [tool_turn(tool_call("snapshot")), tool_turn(output_call(GOOD_OUTPUT))])
        assert seen[0].run == {"source": "q"}
        assert seen[0].attempt == {"source": "q", "retrying": False}

    async def test_initialiser_exception_propagates(self):
        def broken(data):
            raise RuntimeError("no run state")

        agent = make_agent(initial_run_state=broken)
        with pytest.raises(RuntimeError, match="no run state"):
            await _run(agent, [tool_turn(output_call(GOOD_OUTPUT))])

    async def test_stateless_helpers_unaffected(self):
        lookup = HelperTool("lookup", "Look up", lambda key: f"value-{key}")
        agent = make_agent(helpers=(lookup,))
        _, caller = await _run(
            agent,
            [tool_turn(tool_call("lookup", {"key": "k"})), tool_turn(output_call(GOOD_OUTPUT))],
        )
        assert _tool_results(caller.requests[1])[0].content == "value-k"


# ---------------------------------------------------------------------------
# Execution isolation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
class TestExecutionIsolation:
    async def test_attempt_state_resets_run_state_persists(self):
        seen: list[AgentState] = []
        agent = make_agent(
            helpers=(COUNT, _snapshot_tool(seen)),
            initial_attempt_state=lambda data, run, ctx: {"attempt_no": ctx.attempt},
        )
        result, _ = await _run(
            agent,
            [
                tool_turn(tool_call("count")),
                tool_turn(output_call(BAD_OUTPUT)),
                tool_turn(tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ],
        )
        assert isinstance(result, Ok)
        assert result.data.attempts == 2
        assert seen[0].run == {"runs": 1}
        assert seen[0].attempt == {"attempt_no": 2}

    async def test_no_leak_between_sequential_executions(self):
        seen: list[AgentState] = []
        agent = make_agent(helpers=(COUNT, _snapshot_tool(seen)))
        await _run(
            agent,
            [tool_turn(tool_call("count")), tool_turn(output_call(GOOD_OUTPUT))],
        )
        await _run(
            agent,
            [tool_turn(tool_call("snapshot")), tool_turn(output_call(GOOD_OUTPUT))],
        )
        assert seen[0].run == {}
        assert seen[0].attempt == {}

    async def test_concurrent_executions_keep_separate_state(self):
        seen: list[AgentState] = []
        agent = make_agent(
            helpers=(COUNT, _snapshot_tool(seen)),
            initial_run_state=lambda data: {"id": data},
        )

        def turns():
            return [
                tool_turn(tool_call("count")),
                tool_turn(tool_call("snapshot")),
                tool_turn(output_call(GOOD_OUTPUT)),
            ]

        await asyncio.gather(
            AgentExecutor(agent, ScriptedCaller(turns())).run("a"),
            AgentExecutor(agent, ScriptedCaller(turns())).run("b"),
        )
        assert sorted((s.run["id"], s.run["runs"]) for s in seen) == [("a", 1), ("b", 1)]
