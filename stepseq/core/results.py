# stepseq/core/results.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional


class OutcomeKind(Enum):
    """The three ways a handler can answer a dispatch request."""

    RESOLVED = auto()  # Action handled, value stored in Sequence.result
    SKIP = auto()  # Action handled, result left untouched
    DEFERRED = auto()  # Not handled, try the next handler


@dataclass(frozen=True)
class HandlerResult:
    """
    Structured outcome of one handler invocation.
    """

    kind: OutcomeKind
    value: Any = None

    @classmethod
    def resolved(cls, value: Any = None) -> "HandlerResult":
        return cls(OutcomeKind.RESOLVED, value)

    @classmethod
    def skip(cls) -> "HandlerResult":
        return _SKIP

    @classmethod
    def deferred(cls) -> "HandlerResult":
        return _DEFERRED

    @property
    def is_deferred(self) -> bool:
        return self.kind is OutcomeKind.DEFERRED

    @property
    def is_skip(self) -> bool:
        return self.kind is OutcomeKind.SKIP


_SKIP = HandlerResult(OutcomeKind.SKIP)
_DEFERRED = HandlerResult(OutcomeKind.DEFERRED)


@dataclass(frozen=True)
class Rearm:
    """
    Returned by a timer action to have the timer rescheduled under its own name.

    :param delay: Seconds until the next fire. None reuses the previous delay.
    """

    delay: Optional[float] = None


@dataclass(frozen=True)
class Result:
    """
    Value-or-error record produced at every engine invocation site, so the
    dispatch loop can route failures explicitly instead of unwinding through it.
    """

    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def capture(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Result:
    """
    Call fn and wrap its return value or raised exception in a Result.
    """
    try:
        return Result(value=fn(*args, **kwargs))
    except Exception as error:
        return Result(error=error)
