"""Two-outcome result values.

Operations that either succeed with a value or fail with an error
(resolve/validate, metadata load/save, the top-level command handlers) return
an ``Ok`` or an ``Err`` instead of raising.  Callers branch on the variant with
``match``::

    match manager.load(path):
        case Ok(value=metadata):
            ...
        case Err(error=err):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E


Result = Union[Ok[T], Err[E]]


def is_ok(result: Result) -> bool:
    return isinstance(result, Ok)


def is_err(result: Result) -> bool:
    return isinstance(result, Err)


def unwrap(result: Result[T, E]) -> T:
    """Return the value of an ``Ok`` or raise the error held by an ``Err``.

    Non-exception errors are wrapped in a ``RuntimeError``.
    """
    match result:
        case Ok(value=value):
            return value
        case Err(error=error):
            if isinstance(error, BaseException):
                raise error
            raise RuntimeError(str(error))
    raise TypeError(f"Not a Result: {result!r}")
