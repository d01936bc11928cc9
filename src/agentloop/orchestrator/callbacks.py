"""Execution lifecycle callbacks.

Callbacks are purely informational. They are invoked synchronously through
``safe_invoke_callback``: an exception raised inside one is logged,
collected into ``ExecuteMetadata.callback_errors``, and otherwise ignored.
A callback that returns an awaitable is not awaited.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agentloop.context import ExecutionContext
    from agentloop.errors.formatter import AgentError
    from agentloop.orchestrator.models import ExecuteMetadata
    from agentloop.validation.types import ValidationLayerMetadata, ValidationLayerResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecuteCallbacks:
    """Optional hooks fired during an execution.

    Attributes:
        on_attempt_start: ``(context)`` before prompts are built.
        on_attempt_complete: ``(context, success)`` after validation.
        on_validation_failure: ``(context, error)`` with the failing
            layer's raw error.
        on_validation_layer_start: ``(context, layer_metadata)``.
        on_validation_layer_complete: ``(context, layer_result)``.
        on_tool_call: ``(context, tool_name, arguments)``.
        on_tool_result: ``(context, tool_name, content)``.
        on_success: ``(output, metadata)``.
        on_failure: ``(errors, metadata)``.
    """

    on_attempt_start: Callable[[ExecutionContext], Any] | None = None
    on_attempt_complete: Callable[[ExecutionContext, bool], Any] | None = None
    on_validation_failure: Callable[[ExecutionContext, Any], Any] | None = None
    on_validation_layer_start: (
        Callable[[ExecutionContext, ValidationLayerMetadata], Any] | None
    ) = None
    on_validation_layer_complete: (
        Callable[[ExecutionContext, ValidationLayerResult], Any] | None
    ) = None
    on_tool_call: Callable[[ExecutionContext, str, Any], Any] | None = None
    on_tool_result: Callable[[ExecutionContext, str, str], Any] | None = None
    on_success: Callable[[Any, ExecuteMetadata], Any] | None = None
    on_failure: Callable[[list[AgentError], ExecuteMetadata], Any] | None = None


def safe_invoke_callback(
    callback: Callable[..., Any] | None,
    args: tuple[Any, ...],
    errors: list[Exception],
) -> None:
    """Invoke *callback* with *args*, recording any exception in *errors*."""
    if callback is None:
        return
    try:
        outcome = callback(*args)
    except Exception as exc:
        logger.debug("Execution callback error", exc_info=True)
        errors.append(exc)
        return
    if inspect.iscoroutine(outcome):
        # Never awaited; close it so no "never awaited" warning leaks.
        outcome.close()
        logger.debug("Execution callback %r returned a coroutine; ignored", callback)


def logging_callbacks(log: logging.Logger | None = None) -> ExecuteCallbacks:
    """Build callbacks that log every lifecycle event.

    For audit trail mode: nothing changes control flow, every event is
    recorded at INFO (tool traffic at DEBUG).
    """
    log = log or logger

    def on_attempt_start(ctx: ExecutionContext) -> None:
        log.info("Attempt %d/%d started", ctx.attempt, ctx.max_attempts)

    def on_attempt_complete(ctx: ExecutionContext, success: bool) -> None:
        log.info(
            "Attempt %d/%d %s",
            ctx.attempt,
            ctx.max_attempts,
            "succeeded" if success else "failed validation",
        )

    def on_validation_failure(ctx: ExecutionContext, error: Any) -> None:
        log.info("Validation failed on attempt %d: %s", ctx.attempt, error)

    def on_layer_start(ctx: ExecutionContext, layer: ValidationLayerMetadata) -> None:
        log.debug("Validation layer %s (%s) started", layer.name, layer.type.value)

    def on_layer_complete(ctx: ExecutionContext, result: ValidationLayerResult) -> None:
        log.debug(
            "Validation layer %s %s", result.name, "passed" if result.success else "failed"
        )

    def on_tool_call(ctx: ExecutionContext, name: str, arguments: Any) -> None:
        log.debug("Iteration %d: tool call %s(%s)", ctx.iteration, name, arguments)

    def on_tool_result(ctx: ExecutionContext, name: str, content: str) -> None:
        log.debug("Iteration %d: tool %s returned %r", ctx.iteration, name, content[:200])

    def on_success(output: Any, metadata: ExecuteMetadata) -> None:
        log.info("Execution succeeded (attempts=%s)", metadata.attempts)

    def on_failure(errors: list[AgentError], metadata: ExecuteMetadata) -> None:
        log.warning(
            "Execution failed: %s", ", ".join(e.code.value for e in errors)
        )

    return ExecuteCallbacks(
        on_attempt_start=on_attempt_start,
        on_attempt_complete=on_attempt_complete,
        on_validation_failure=on_validation_failure,
        on_validation_layer_start=on_layer_start,
        on_validation_layer_complete=on_layer_complete,
        on_tool_call=on_tool_call,
        on_tool_result=on_tool_result,
        on_success=on_success,
        on_failure=on_failure,
    )
