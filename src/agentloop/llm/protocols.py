"""Protocol for model callers.

Defines the interface the orchestrator uses to talk to a model. Any
object with a matching async ``call`` method satisfies it; the built-in
``OpenAIModelCaller`` is one implementation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentloop.context import CancelSignal
    from agentloop.llm.models import ModelRequest, ModelTurn


@runtime_checkable
class ModelCaller(Protocol):
    """Protocol for one-turn model calls.

    Implementations may raise ``LLMRateLimitError``, ``LLMTokenLimitError``
    and ``LLMResponseError`` to get a specific error code; any other
    exception is reported as ``API_ERROR``. Timeouts should set the
    cancellation signal rather than raise.
    """

    async def call(
        self,
        request: ModelRequest,
        signal: CancelSignal | None = None,
    ) -> ModelTurn: ...
