"""Execution context and cooperative cancellation.

``ExecutionContext`` is the read-only view of "where we are" that prompt
generators and observability callbacks receive. Only the orchestrator
creates new contexts.

Cancellation is any object with an ``is_set()`` method, so both
``asyncio.Event`` and ``threading.Event`` work as signals.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable


@runtime_checkable
class CancelSignal(Protocol):
    """Anything that can report whether cancellation was requested."""

    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class ExecutionContext:
    """Attempt and iteration counters for one attempt of an execution.

    Attributes:
        attempt: 1-based attempt number.
        max_attempts: Upper bound on attempts (>= 1).
        iteration: Model turns taken so far in this attempt (>= 0).
        max_iterations: Upper bound on model turns per attempt (>= 1).
    """

    attempt: int
    max_attempts: int
    iteration: int = 0
    max_iterations: int = 15

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if not 1 <= self.attempt <= self.max_attempts:
            raise ValueError(
                f"attempt must be between 1 and {self.max_attempts}, got {self.attempt}"
            )
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if self.iteration < 0:
            raise ValueError(f"iteration must be >= 0, got {self.iteration}")

    @property
    def is_retry(self) -> bool:
        return self.attempt > 1

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt == self.max_attempts

    def with_iteration(self, iteration: int) -> ExecutionContext:
        """Return a copy of this context at *iteration*."""
        return replace(self, iteration=iteration)


def is_cancelled(signal: CancelSignal | None) -> bool:
    return signal is not None and signal.is_set()


def cancel_after(seconds: float) -> asyncio.Event:
    """Return an event that the running loop sets after *seconds*.

    Lets a timeout reach the orchestrator as an ordinary cancellation
    signal. Must be called from inside a running event loop.

    Usage::

        result = await executor.run(data, signal=cancel_after(30))
    """
    event = asyncio.Event()
    asyncio.get_running_loop().call_later(seconds, event.set)
    return event
