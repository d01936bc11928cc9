"""Execution result models.

Provides TokenMetrics, ExecuteMetadata, ExecuteSuccess and ExecuteFailure,
the values an execution hands back to its caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from agentloop.errors.formatter import AgentError
    from agentloop.llm.models import TokenUsage


@dataclass(frozen=True)
class TokenMetrics:
    """Cumulative token counts for one execution.

    Frozen: ``add`` returns a new value, so counts only ever grow.
    """

    input: int = 0
    output: int = 0
    cache_creation_input: int = 0
    cache_read_input: int = 0

    def __post_init__(self) -> None:
        for name in ("input", "output", "cache_creation_input", "cache_read_input"):
            if getattr(self, name) < 0:
                raise ValueError(f"Token count {name} must be >= 0")

    def add(self, usage: TokenUsage) -> TokenMetrics:
        """Return these metrics plus *usage*. Negative usage is ignored."""
        return TokenMetrics(
            input=self.input + max(usage.input, 0),
            output=self.output + max(usage.output, 0),
            cache_creation_input=self.cache_creation_input
            + max(usage.cache_creation_input, 0),
            cache_read_input=self.cache_read_input + max(usage.cache_read_input, 0),
        )

    @property
    def total(self) -> int:
        return self.input + self.output


@dataclass(frozen=True)
class ExecuteMetadata:
    """Observability data returned with every outcome.

    Fields are None when the agent's ObservabilityConfig disables them.

    Attributes:
        latency_ms: Wall-clock duration of the execution.
        tokens: Cumulative token usage.
        attempts: Attempts started.
        callback_errors: Exceptions raised by observability callbacks.
    """

    latency_ms: float | None = None
    tokens: TokenMetrics | None = None
    attempts: int | None = None
    callback_errors: tuple[Exception, ...] = ()


@dataclass(frozen=True)
class ExecuteSuccess:
    """A validated output and how it was obtained."""

    output: Any
    attempts: int
    metadata: ExecuteMetadata = field(default_factory=ExecuteMetadata)


@dataclass(frozen=True)
class ExecuteFailure:
    """A terminal failure: the errors and the metadata gathered so far."""

    errors: list[AgentError]
    metadata: ExecuteMetadata = field(default_factory=ExecuteMetadata)

    @property
    def codes(self) -> list[str]:
        return [e.code.value for e in self.errors]
