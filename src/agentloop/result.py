"""Result type used by every runtime operation in agentloop.

Runtime failures are returned, never raised: every internal function
hands back either ``Ok(data)`` or ``Err(error)``. Exceptions are only
raised at the outer boundary (see ``agentloop.exceptions.raise_for_failure``
and the CLI).

Usage::

    result = await validate_layers(raw, Answer, validators)
    if is_ok(result):
        use(result.data)
    else:
        report(result.error)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying ``data``."""

    data: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed result carrying ``error``."""

    error: E

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]


def ok(data: T) -> Ok[T]:
    return Ok(data)


def err(error: E) -> Err[E]:
    return Err(error)


def is_ok(result: Any) -> bool:
    """Return True if *result* is an ``Ok``."""
    return isinstance(result, Ok)


def is_err(result: Any) -> bool:
    """Return True if *result* is an ``Err``."""
    return isinstance(result, Err)


def is_result(value: Any) -> bool:
    return isinstance(value, (Ok, Err))


def map_result(result: Result[T, E], fn: Callable[[T], U]) -> Result[U, E]:
    """Apply *fn* to the success value, passing errors through untouched."""
    if isinstance(result, Ok):
        return Ok(fn(result.data))
    return result


def map_error(result: Result[T, E], fn: Callable[[E], F]) -> Result[T, F]:
    """Apply *fn* to the error value, passing successes through untouched."""
    if isinstance(result, Err):
        return Err(fn(result.error))
    return result


def chain(result: Result[T, E], fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
    """Feed the success value into another Result-returning step."""
    if isinstance(result, Ok):
        return fn(result.data)
    return result


def unwrap_or(result: Result[T, E], default: T) -> T:
    if isinstance(result, Ok):
        return result.data
    return default


def unwrap_or_else(result: Result[T, E], fn: Callable[[E], T]) -> T:
    if isinstance(result, Ok):
        return result.data
    return fn(result.error)


def collect(results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Combine results into one, returning the first error encountered.

    Args:
        results: Results to combine, in order.

    Returns:
        ``Ok`` with every success value, or the first ``Err`` seen.
    """
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.data)
    return Ok(values)
