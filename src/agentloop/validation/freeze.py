"""Deep freezing of validated output.

``deep_freeze`` returns a structurally equal copy of a value in which every
container refuses writes:

- ``dict`` becomes ``FrozenDict`` and ``list`` becomes ``FrozenList``.
  Both are subclasses, so they still compare equal to plain dicts and lists.
- ``set`` becomes ``frozenset``. Tuples keep their type with frozen members.
- pydantic models and dataclass instances become instances of a cached
  read-only subclass of their own class, with frozen field values.

Every refused write raises ``FrozenInstanceError``, a ``TypeError`` whose
message contains "read only". ``is_mutation_error`` recognises it along
with the errors the interpreter itself raises for immutable builtins.
The input value is never modified.
"""

from __future__ import annotations

import dataclasses
from typing import Any, NoReturn

from pydantic import BaseModel

_FROZEN_BASE_ATTR = "__agentloop_frozen_base__"

_MUTATION_PATTERNS = (
    "read only",
    "read-only",
    "not extensible",
    "cannot assign",
    "cannot add",
    "cannot delete",
    "does not support item assignment",
    "does not support item deletion",
)


class FrozenInstanceError(TypeError):
    """Raised on any attempt to modify a deep-frozen value."""


def _refuse(obj: object, operation: str) -> NoReturn:
    raise FrozenInstanceError(
        f"'{type(obj).__name__}' object is read only; cannot {operation}"
    )


class FrozenDict(dict):
    """A dict that refuses every in-place modification."""

    __slots__ = ()

    def __setitem__(self, key: Any, value: Any) -> None:
        _refuse(self, f"assign key {key!r}")

    def __delitem__(self, key: Any) -> None:
        _refuse(self, f"delete key {key!r}")

    def __ior__(self, other: Any) -> NoReturn:
        _refuse(self, "update")

    def __setattr__(self, name: str, value: Any) -> None:
        _refuse(self, f"assign attribute {name!r}")

    def clear(self) -> None:
        _refuse(self, "clear")

    def pop(self, *args: Any) -> Any:
        _refuse(self, "pop")

    def popitem(self) -> Any:
        _refuse(self, "popitem")

    def setdefault(self, *args: Any) -> Any:
        _refuse(self, "setdefault")

    def update(self, *args: Any, **kwargs: Any) -> None:
        _refuse(self, "update")

    def __reduce__(self) -> tuple:
        return (FrozenDict, (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


class FrozenList(list):
    """A list that refuses every in-place modification."""

    __slots__ = ()

    def __setitem__(self, index: Any, value: Any) -> None:
        _refuse(self, f"assign index {index!r}")

    def __delitem__(self, index: Any) -> None:
        _refuse(self, f"delete index {index!r}")

    def __iadd__(self, other: Any) -> NoReturn:
        _refuse(self, "extend")

    def __imul__(self, other: Any) -> NoReturn:
        _refuse(self, "repeat")

    def __setattr__(self, name: str, value: Any) -> None:
        _refuse(self, f"assign attribute {name!r}")

    def append(self, value: Any) -> None:
        _refuse(self, "append")

    def extend(self, values: Any) -> None:
        _refuse(self, "extend")

    def insert(self, index: Any, value: Any) -> None:
        _refuse(self, "insert")

    def pop(self, *args: Any) -> Any:
        _refuse(self, "pop")

    def remove(self, value: Any) -> None:
        _refuse(self, "remove")

    def clear(self) -> None:
        _refuse(self, "clear")

    def sort(self, *args: Any, **kwargs: Any) -> None:
        _refuse(self, "sort")

    def reverse(self) -> None:
        _refuse(self, "reverse")

    def __reduce__(self) -> tuple:
        return (FrozenList, (list(self),))

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"


# ---------------------------------------------------------------------------
# Read-only subclasses for models and dataclasses
# ---------------------------------------------------------------------------

_FROZEN_CLASSES: dict[type, type] = {}


def _readonly_setattr(self: object, name: str, value: Any) -> None:
    _refuse(self, f"assign attribute {name!r}")


def _readonly_delattr(self: object, name: str) -> None:
    _refuse(self, f"delete attribute {name!r}")


def _object_state(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return (obj.__dict__, obj.__pydantic_extra__)
    return tuple(getattr(obj, f.name) for f in dataclasses.fields(obj))


def _frozen_eq(self: Any, other: Any) -> Any:
    base = getattr(type(self), _FROZEN_BASE_ATTR)
    if not isinstance(other, base):
        return NotImplemented
    return _object_state(self) == _object_state(other)


def _frozen_class(cls: type) -> type:
    frozen = _FROZEN_CLASSES.get(cls)
    if frozen is None:
        namespace = {
            "__module__": cls.__module__,
            "__qualname__": cls.__qualname__,
            "__setattr__": _readonly_setattr,
            "__delattr__": _readonly_delattr,
            "__eq__": _frozen_eq,
            "__hash__": None,
            _FROZEN_BASE_ATTR: cls,
        }
        frozen = type(cls.__name__, (cls,), namespace)
        _FROZEN_CLASSES[cls] = frozen
    return frozen


def _freeze_model(model: BaseModel, memo: dict[int, Any]) -> BaseModel:
    # Built without model_construct so model_post_init never runs on the
    # read-only class.
    frozen = object.__new__(_frozen_class(type(model)))
    memo[id(model)] = frozen
    values = {name: _freeze(value, memo) for name, value in model.__dict__.items()}
    extra = model.__pydantic_extra__
    if extra is not None:
        extra = {key: _freeze(value, memo) for key, value in extra.items()}
    private = model.__pydantic_private__
    object.__setattr__(frozen, "__dict__", values)
    object.__setattr__(frozen, "__pydantic_fields_set__", set(model.__pydantic_fields_set__))
    object.__setattr__(frozen, "__pydantic_extra__", extra)
    object.__setattr__(frozen, "__pydantic_private__", None if private is None else dict(private))
    return frozen


def _freeze_dataclass(obj: Any, memo: dict[int, Any]) -> Any:
    frozen = object.__new__(_frozen_class(type(obj)))
    memo[id(obj)] = frozen
    for f in dataclasses.fields(obj):
        object.__setattr__(frozen, f.name, _freeze(getattr(obj, f.name), memo))
    return frozen


def _freeze(value: Any, memo: dict[int, Any]) -> Any:
    if id(value) in memo:
        return memo[id(value)]
    if isinstance(value, (FrozenDict, FrozenList, frozenset)) or is_frozen_object(value):
        return value

    if isinstance(value, dict):
        frozen_dict = FrozenDict()
        memo[id(value)] = frozen_dict
        dict.update(frozen_dict, {k: _freeze(v, memo) for k, v in value.items()})
        return frozen_dict
    if isinstance(value, list):
        frozen_list = FrozenList()
        memo[id(value)] = frozen_list
        list.extend(frozen_list, [_freeze(item, memo) for item in value])
        return frozen_list
    if isinstance(value, tuple):
        items = [_freeze(item, memo) for item in value]
        if hasattr(value, "_fields"):
            return type(value)(*items)
        return tuple(items)
    if isinstance(value, set):
        return frozenset(value)
    if isinstance(value, BaseModel):
        return _freeze_model(value, memo)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _freeze_dataclass(value, memo)
    return value


def deep_freeze(value: Any) -> Any:
    """Return a read-only copy of *value*, recursively.

    Scalars and unrecognised objects are returned unchanged. Already-frozen
    values are returned as-is, so freezing is idempotent.

    Usage::

        frozen = deep_freeze({"items": [1, 2]})
        frozen["items"].append(3)  # raises FrozenInstanceError
    """
    return _freeze(value, {})


def is_frozen_object(value: Any) -> bool:
    """Return True if *value* is a model or dataclass frozen by deep_freeze."""
    return hasattr(type(value), _FROZEN_BASE_ATTR)


def is_mutation_error(exc: BaseException) -> bool:
    """Return True if *exc* is the error raised by writing to a frozen value."""
    if not isinstance(exc, TypeError):
        return False
    message = str(exc).lower()
    return any(pattern in message for pattern in _MUTATION_PATTERNS)
