"""Prompt construction with error wrapping.

Each builder calls the agent's prompt generator, awaits it if needed, and
turns any failure into a single ``PROMPT_GENERATION_FAILED`` error. None
of them raise for a failing generator. ``asyncio.CancelledError`` is not
an ``Exception`` and therefore still propagates.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from agentloop.context import CancelSignal, ExecutionContext
from agentloop.errors.codes import AgentErrorCode
from agentloop.errors.contexts import PromptGenerationFailedContext, PromptType
from agentloop.errors.formatter import AgentError, agent_error
from agentloop.result import Err, Result, err, ok

if TYPE_CHECKING:
    from collections.abc import Callable

    from agentloop.definition import AgentDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitialPrompts:
    """Prompts for an attempt with no previous error."""

    system: str
    user: str

    @property
    def is_retry(self) -> bool:
        return False


@dataclass(frozen=True)
class RetryPrompts:
    """Prompts for an attempt that follows a validation failure."""

    system: str
    user: str
    error: str

    @property
    def is_retry(self) -> bool:
        return True


BuiltPrompts = Union[InitialPrompts, RetryPrompts]


def _failure_reason(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


async def _generate(
    prompt_type: PromptType,
    attempt: int,
    generator: Callable[..., Any],
    *args: Any,
) -> Result[str, list[AgentError]]:
    try:
        prompt = generator(*args)
        if inspect.isawaitable(prompt):
            prompt = await prompt
    except Exception as exc:
        reason = _failure_reason(exc)
        logger.debug(
            "%s prompt generation failed on attempt %d: %s",
            prompt_type.value,
            attempt,
            reason,
            exc_info=True,
        )
        return err(_prompt_error(prompt_type, reason, attempt))

    if not isinstance(prompt, str):
        reason = f"prompt generator returned {type(prompt).__name__}, expected str"
        return err(_prompt_error(prompt_type, reason, attempt))
    return ok(prompt)


def _prompt_error(prompt_type: PromptType, reason: str, attempt: int) -> list[AgentError]:
    return [
        agent_error(
            AgentErrorCode.PROMPT_GENERATION_FAILED,
            PromptGenerationFailedContext(
                prompt_type=prompt_type, reason=reason, attempt=attempt
            ),
        )
    ]


async def build_system_prompt(
    agent: AgentDefinition,
    input: Any,
    context: ExecutionContext,
    signal: CancelSignal | None = None,
) -> Result[str, list[AgentError]]:
    """Generate the system prompt for one attempt.

    Returns:
        ``Ok(prompt)`` unchanged, or ``Err`` with one
        ``PROMPT_GENERATION_FAILED`` error for ``system``.
    """
    return await _generate(
        PromptType.SYSTEM, context.attempt, agent.prompts.system, input, context, signal
    )


async def build_user_prompt(
    agent: AgentDefinition,
    input: Any,
    signal: CancelSignal | None = None,
    *,
    attempt: int = 1,
) -> Result[str, list[AgentError]]:
    """Generate the user prompt.

    The user prompt describes the task and does not change between
    attempts, so its generator receives no execution context. *attempt*
    is only used to label a failure.
    """
    return await _generate(PromptType.USER, attempt, agent.prompts.user, input, signal)


async def build_error_prompt(
    agent: AgentDefinition,
    formatted_error: str,
    context: ExecutionContext,
    signal: CancelSignal | None = None,
) -> Result[str, list[AgentError]]:
    """Generate the feedback prompt from the previous attempt's formatted error."""
    return await _generate(
        PromptType.ERROR,
        context.attempt,
        agent.prompts.error,
        formatted_error,
        context,
        signal,
    )


async def build_prompts(
    agent: AgentDefinition,
    input: Any,
    context: ExecutionContext,
    *,
    previous_error: str | None = None,
    user_prompt: str | None = None,
    signal: CancelSignal | None = None,
) -> Result[BuiltPrompts, list[AgentError]]:
    """Build every prompt one attempt needs, failing fast.

    The system prompt is built first, then the user prompt unless
    *user_prompt* is given. When the attempt follows a failure
    (``attempt > 1`` and *previous_error* set) the error prompt is built
    last. The first failure is returned and nothing after it is generated.

    Args:
        agent: The agent definition.
        input: Execution input passed to the generators.
        context: Current attempt's context.
        previous_error: Formatted error from the immediately preceding attempt.
        user_prompt: Already generated user prompt, reused across attempts.
        signal: Cancellation signal forwarded to the generators.

    Returns:
        ``Ok(InitialPrompts | RetryPrompts)`` or ``Err`` with one error.
    """
    system = await build_system_prompt(agent, input, context, signal)
    if isinstance(system, Err):
        return system

    if user_prompt is None:
        user = await build_user_prompt(agent, input, signal, attempt=context.attempt)
        if isinstance(user, Err):
            return user
        user_prompt = user.data

    if context.attempt > 1 and previous_error is not None:
        error = await build_error_prompt(agent, previous_error, context, signal)
        if isinstance(error, Err):
            return error
        return ok(RetryPrompts(system=system.data, user=user_prompt, error=error.data))

    return ok(InitialPrompts(system=system.data, user=user_prompt))
