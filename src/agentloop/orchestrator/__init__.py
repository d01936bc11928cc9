"""Attempt orchestration: the retry loop, tool dispatch, callbacks, results."""

from agentloop.orchestrator.callbacks import (
    ExecuteCallbacks,
    logging_callbacks,
    safe_invoke_callback,
)
from agentloop.orchestrator.loop import AgentExecutor, execute_agent
from agentloop.orchestrator.models import (
    ExecuteFailure,
    ExecuteMetadata,
    ExecuteSuccess,
    TokenMetrics,
)
from agentloop.orchestrator.tools import (
    SUBMIT_TOOL,
    ToolDispatcher,
    ToolResult,
    TurnOutcome,
    apply_update,
    build_tools,
    is_reflection_enabled,
)

__all__ = [
    "SUBMIT_TOOL",
    "AgentExecutor",
    "ExecuteCallbacks",
    "ExecuteFailure",
    "ExecuteMetadata",
    "ExecuteSuccess",
    "TokenMetrics",
    "ToolDispatcher",
    "ToolResult",
    "TurnOutcome",
    "apply_update",
    "build_tools",
    "execute_agent",
    "is_reflection_enabled",
    "logging_callbacks",
    "safe_invoke_callback",
]
