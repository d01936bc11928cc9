"""Attempt orchestrator: the retry state machine around one agent execution.

States::

    Attempting(a) -> ToolLoop(a, i) -> Success
                                     | Retry -> Attempting(a + 1)
                                     | Exhausted

Each attempt builds prompts (feeding back the previous attempt's formatted
validation error, if any), runs the tool loop until the model delivers the
output tool's arguments, and validates them. A validation failure before
the last attempt is retried; every other failure is terminal.

Nothing here raises for a runtime failure: ``run`` always returns
``Ok(ExecuteSuccess)`` or ``Err(ExecuteFailure)``.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from agentloop.context import CancelSignal, ExecutionContext, is_cancelled
from agentloop.definition import AgentState
from agentloop.errors.codes import AgentErrorCode
from agentloop.errors.contexts import (
    ApiErrorContext,
    ExecutionCancelledContext,
    ExecutionPhase,
    InvalidResponseContext,
    MaxAttemptsExceededContext,
    MaxIterationsExceededContext,
    OutputToolNotUsedContext,
    RateLimitErrorContext,
    SubmitBeforeOutputContext,
    TokenLimitExceededContext,
)
from agentloop.errors.formatter import AgentError, agent_error
from agentloop.llm.errors import (
    LLMClientError,
    LLMRateLimitError,
    LLMResponseError,
    LLMTokenLimitError,
)
from agentloop.llm.models import Exchange, ModelRequest
from agentloop.orchestrator.callbacks import ExecuteCallbacks, safe_invoke_callback
from agentloop.orchestrator.models import (
    ExecuteFailure,
    ExecuteMetadata,
    ExecuteSuccess,
    TokenMetrics,
)
from agentloop.orchestrator.tools import ToolDispatcher, build_tools, is_reflection_enabled
from agentloop.prompts.build import BuiltPrompts, RetryPrompts, build_prompts, build_user_prompt
from agentloop.result import Err, Result, err, ok
from agentloop.validation.format import format_validation_error_for_prompt
from agentloop.validation.layers import validate_layers
from agentloop.validation.types import (
    ValidationLayerCallbacks,
    ValidationLayerMetadata,
    ValidationLayerResult,
)

if TYPE_CHECKING:
    from agentloop.definition import AgentDefinition
    from agentloop.llm.protocols import ModelCaller

logger = logging.getLogger(__name__)

DEFAULT_LAYER_NAME = "validation"
DEFAULT_LAYER_DESCRIPTION = "No description provided for validation layer"


@dataclass
class _RunState:
    """Mutable bookkeeping for one execution. Never leaves this module."""

    started: float = field(default_factory=time.perf_counter)
    tokens: TokenMetrics = field(default_factory=TokenMetrics)
    attempts: int = 0
    callback_errors: list[Exception] = field(default_factory=list)
    run_state: Any = None


@dataclass
class _FailedLayer:
    name: str = DEFAULT_LAYER_NAME
    description: str = DEFAULT_LAYER_DESCRIPTION


class AgentExecutor:
    """Runs an agent definition against a model caller.

    Usage::

        executor = AgentExecutor(agent, OpenAIModelCaller())
        result = await executor.run({"text": document}, signal=cancel_after(60))
        if is_ok(result):
            print(result.data.output)
        else:
            print(format_agent_errors_for_developer(result.error.errors))
    """

    def __init__(self, agent: AgentDefinition, caller: ModelCaller) -> None:
        self._agent = agent
        self._caller = caller
        self._dispatcher = ToolDispatcher(agent)
        self._tools = build_tools(agent)

    @property
    def agent(self) -> AgentDefinition:
        return self._agent

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        input: Any,
        *,
        max_attempts: int | None = None,
        callbacks: ExecuteCallbacks | None = None,
        signal: CancelSignal | None = None,
    ) -> Result[ExecuteSuccess, ExecuteFailure]:
        """Execute the agent until it produces a valid output or fails.

        Args:
            input: Task input handed to the prompt generators.
            max_attempts: Overrides the definition's ``max_attempts``.
            callbacks: Lifecycle hooks. Informational only.
            signal: Cancellation signal, checked at every suspension point.

        Returns:
            ``Ok(ExecuteSuccess)`` with the validated, frozen output, or
            ``Err(ExecuteFailure)`` with the terminal errors.

        Raises:
            ValueError: If *max_attempts* is given and is less than 1.

        Exceptions raised by the state initialisers propagate unchanged.
        """
        attempts_allowed = (
            max_attempts if max_attempts is not None else self._agent.validation.max_attempts
        )
        if attempts_allowed < 1:
            raise ValueError(f"max_attempts must be >= 1, got {attempts_allowed}")
        max_iterations = self._agent.validation.max_iterations_per_attempt
        callbacks = callbacks or ExecuteCallbacks()
        state = _RunState()
        state.run_state = self._initial_run_state(input)

        logger.info(
            "Executing agent %s (max_attempts=%d, max_iterations=%d)",
            self._agent.name,
            attempts_allowed,
            max_iterations,
        )

        if is_cancelled(signal):
            return self._fail(state, callbacks, [_cancelled(1, ExecutionPhase.PROMPT_GENERATION)])

        user_prompt = await build_user_prompt(self._agent, input, signal, attempt=1)
        if isinstance(user_prompt, Err):
            return self._fail(state, callbacks, user_prompt.error)

        previous_error: str | None = None
        for attempt in range(1, attempts_allowed + 1):
            context = ExecutionContext(
                attempt=attempt,
                max_attempts=attempts_allowed,
                iteration=0,
                max_iterations=max_iterations,
            )
            state.attempts = attempt
            agent_state = AgentState(
                context=context,
                run=state.run_state,
                attempt=self._initial_attempt_state(input, state.run_state, context),
            )
            safe_invoke_callback(callbacks.on_attempt_start, (context,), state.callback_errors)
            logger.debug("Attempt %d/%d started", attempt, attempts_allowed)

            if is_cancelled(signal):
                return self._fail(
                    state, callbacks, [_cancelled(attempt, ExecutionPhase.PROMPT_GENERATION)]
                )

            prompts = await build_prompts(
                self._agent,
                input,
                context,
                previous_error=previous_error,
                user_prompt=user_prompt.data,
                signal=signal,
            )
            if isinstance(prompts, Err):
                return self._fail(state, callbacks, prompts.error)

            raw_output = await self._run_tool_loop(
                prompts.data, context, agent_state, state, callbacks, signal
            )
            if isinstance(raw_output, Err):
                return self._fail(state, callbacks, raw_output.error)

            if is_cancelled(signal):
                return self._fail(
                    state, callbacks, [_cancelled(attempt, ExecutionPhase.VALIDATION)]
                )

            failed_layer = _FailedLayer()
            validation = await validate_layers(
                raw_output.data,
                self._agent.validation.output_schema,
                self._agent.validation.custom_validators,
                self._layer_callbacks(context, callbacks, state, failed_layer),
            )

            if not isinstance(validation, Err):
                safe_invoke_callback(
                    callbacks.on_attempt_complete, (context, True), state.callback_errors
                )
                logger.info("Attempt %d/%d succeeded", attempt, attempts_allowed)
                metadata = self._metadata(state)
                safe_invoke_callback(
                    callbacks.on_success, (validation.data, metadata), state.callback_errors
                )
                return ok(
                    ExecuteSuccess(output=validation.data, attempts=attempt, metadata=metadata)
                )

            safe_invoke_callback(
                callbacks.on_attempt_complete, (context, False), state.callback_errors
            )
            safe_invoke_callback(
                callbacks.on_validation_failure, (context, validation.error), state.callback_errors
            )
            previous_error = self._format_feedback(validation.error, failed_layer)
            logger.info(
                "Attempt %d/%d failed validation in %s",
                attempt,
                attempts_allowed,
                failed_layer.name,
            )

        return self._fail(
            state,
            callbacks,
            [
                agent_error(
                    AgentErrorCode.MAX_ATTEMPTS_EXCEEDED,
                    MaxAttemptsExceededContext(
                        attempts=attempts_allowed,
                        max_attempts=attempts_allowed,
                        last_error=previous_error,
                    ),
                )
            ],
        )

    # ------------------------------------------------------------------
    # Tool loop
    # ------------------------------------------------------------------

    async def _run_tool_loop(
        self,
        prompts: BuiltPrompts,
        context: ExecutionContext,
        agent_state: AgentState,
        state: _RunState,
        callbacks: ExecuteCallbacks,
        signal: CancelSignal | None,
    ) -> Result[Any, list[AgentError]]:
        """Call the model until it delivers output, stops, or runs out of turns."""
        attempt = context.attempt
        reflection = is_reflection_enabled(self._agent)
        exchanges: list[Exchange] = []
        output_seen = False
        last_output: Any = None
        submitted = False
        iteration = 0

        while True:
            iteration += 1
            if iteration > context.max_iterations:
                logger.warning(
                    "Attempt %d exceeded %d iterations", attempt, context.max_iterations
                )
                return err(
                    [
                        agent_error(
                            AgentErrorCode.MAX_ITERATIONS_EXCEEDED,
                            MaxIterationsExceededContext(
                                iteration_count=iteration,
                                max_iterations=context.max_iterations,
                                attempt=attempt,
                            ),
                        )
                    ]
                )
            turn_context = context.with_iteration(iteration)

            if is_cancelled(signal):
                return err([_cancelled(attempt, ExecutionPhase.ITERATION)])

            request = ModelRequest(
                system=prompts.system,
                user=prompts.user,
                error=prompts.error if isinstance(prompts, RetryPrompts) else None,
                tools=self._tools,
                model=self._agent.model,
                exchanges=list(exchanges),
            )
            try:
                turn = await self._caller.call(request, signal)
            except Exception as exc:
                logger.warning("Model call failed on attempt %d: %s", attempt, exc)
                return err([_model_error(exc, attempt, self._agent.model.provider)])

            state.tokens = state.tokens.add(turn.usage)

            if is_cancelled(signal):
                return err([_cancelled(attempt, ExecutionPhase.API_CALL)])

            if not turn.tool_calls:
                logger.debug("Model stopped without tool calls at iteration %d", iteration)
                break

            exchanges.append(turn)
            outcome = await self._dispatcher.process(
                turn.tool_calls,
                turn_context,
                callbacks,
                state.callback_errors,
                last_output,
                dataclasses.replace(agent_state, context=turn_context),
            )
            agent_state = outcome.state
            state.run_state = agent_state.run
            exchanges.extend(outcome.results)
            output_seen = output_seen or outcome.output_found
            last_output = outcome.last_output

            if outcome.submit_found:
                if not output_seen:
                    return err(
                        [
                            agent_error(
                                AgentErrorCode.SUBMIT_BEFORE_OUTPUT,
                                SubmitBeforeOutputContext(
                                    attempt=attempt, iteration_count=iteration
                                ),
                            )
                        ]
                    )
                submitted = True
                break
            if outcome.output_found and not reflection:
                break

        if not output_seen or (reflection and not submitted):
            return err(
                [
                    agent_error(
                        AgentErrorCode.OUTPUT_TOOL_NOT_USED,
                        OutputToolNotUsedContext(
                            expected_tool=self._agent.tools.output.name,
                            attempt=attempt,
                            iteration_count=iteration,
                        ),
                    )
                ]
            )
        return ok(last_output)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _initial_run_state(self, input: Any) -> Any:
        initialiser = self._agent.initial_run_state
        return initialiser(input) if initialiser is not None else {}

    def _initial_attempt_state(
        self, input: Any, run_state: Any, context: ExecutionContext
    ) -> Any:
        initialiser = self._agent.initial_attempt_state
        return initialiser(input, run_state, context) if initialiser is not None else {}

    def _layer_callbacks(
        self,
        context: ExecutionContext,
        callbacks: ExecuteCallbacks,
        state: _RunState,
        failed_layer: _FailedLayer,
    ) -> ValidationLayerCallbacks:
        def on_layer_start(metadata: ValidationLayerMetadata) -> None:
            safe_invoke_callback(
                callbacks.on_validation_layer_start, (context, metadata), state.callback_errors
            )

        def on_layer_complete(result: ValidationLayerResult) -> None:
            if not result.success:
                failed_layer.name = result.metadata.name or DEFAULT_LAYER_NAME
                failed_layer.description = (
                    result.metadata.description or DEFAULT_LAYER_DESCRIPTION
                )
            safe_invoke_callback(
                callbacks.on_validation_layer_complete, (context, result), state.callback_errors
            )

        return ValidationLayerCallbacks(
            on_layer_start=on_layer_start, on_layer_complete=on_layer_complete
        )

    def _format_feedback(self, error: Any, layer: _FailedLayer) -> str:
        formatter = self._agent.validation.error_formatter or format_validation_error_for_prompt
        return formatter(error, layer.name, layer.description)

    def _metadata(self, state: _RunState) -> ExecuteMetadata:
        observability = self._agent.observability
        latency = (time.perf_counter() - state.started) * 1000
        return ExecuteMetadata(
            latency_ms=latency if observability.track_latency else None,
            tokens=state.tokens if observability.track_tokens else None,
            attempts=state.attempts if observability.track_attempts else None,
            callback_errors=tuple(state.callback_errors),
        )

    def _fail(
        self,
        state: _RunState,
        callbacks: ExecuteCallbacks,
        errors: list[AgentError],
    ) -> Err[ExecuteFailure]:
        logger.warning(
            "Agent %s failed: %s", self._agent.name, ", ".join(e.code.value for e in errors)
        )
        metadata = self._metadata(state)
        safe_invoke_callback(callbacks.on_failure, (errors, metadata), state.callback_errors)
        return err(ExecuteFailure(errors=list(errors), metadata=metadata))


def _cancelled(attempt: int, phase: ExecutionPhase) -> AgentError:
    return agent_error(
        AgentErrorCode.EXECUTION_CANCELLED,
        ExecutionCancelledContext(attempt=attempt, phase=phase),
    )


def _model_error(exc: Exception, attempt: int, default_provider: str) -> AgentError:
    """Map a model-call exception onto the matching agent error code."""
    provider = getattr(exc, "provider", None) or default_provider
    if isinstance(exc, LLMRateLimitError):
        return agent_error(
            AgentErrorCode.RATE_LIMIT_ERROR,
            RateLimitErrorContext(
                provider=provider, retry_after=exc.retry_after, limit=exc.limit
            ),
        )
    if isinstance(exc, LLMTokenLimitError):
        return agent_error(
            AgentErrorCode.TOKEN_LIMIT_EXCEEDED,
            TokenLimitExceededContext(
                requested_tokens=exc.requested_tokens,
                maximum_tokens=exc.maximum_tokens,
                provider=provider,
            ),
        )
    if isinstance(exc, LLMResponseError):
        return agent_error(
            AgentErrorCode.INVALID_RESPONSE,
            InvalidResponseContext(reason=str(exc), response_type=exc.response_type),
        )
    status_code = exc.status_code if isinstance(exc, LLMClientError) else None
    return agent_error(
        AgentErrorCode.API_ERROR,
        ApiErrorContext(
            provider=provider,
            status_code=status_code,
            message=str(exc) or type(exc).__name__,
            attempt=attempt,
        ),
    )


async def execute_agent(
    agent: AgentDefinition,
    caller: ModelCaller,
    input: Any,
    *,
    max_attempts: int | None = None,
    callbacks: ExecuteCallbacks | None = None,
    signal: CancelSignal | None = None,
) -> Result[ExecuteSuccess, ExecuteFailure]:
    """Run *agent* once. Shorthand for ``AgentExecutor(agent, caller).run(...)``."""
    return await AgentExecutor(agent, caller).run(
        input, max_attempts=max_attempts, callbacks=callbacks, signal=signal
    )
