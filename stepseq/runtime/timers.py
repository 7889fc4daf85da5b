# stepseq/runtime/timers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional

from stepseq.core.errors import UnknownTimerError
from stepseq.core.results import Rearm, Result, capture
from stepseq.runtime.tasks import schedule_awaitable

if TYPE_CHECKING:
    from stepseq.core.sequence import Sequence

logger = logging.getLogger(__name__)

TimerAction = Callable[["Sequence"], Any]


class TimerStatus(Enum):
    """Lifecycle of a scheduled timer."""

    ACTIVE = auto()  # Armed on the loop
    FIRED = auto()  # Ran and was not rearmed
    CANCELLED = auto()  # Removed, replaced or cleared before firing


@dataclass
class TimerHandle:
    """
    A named delayed action owned by one sequence's timer registry.
    """

    name: str
    delay: float
    action: TimerAction
    status: TimerStatus = TimerStatus.ACTIVE
    when: Optional[float] = None
    _loop_handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    def cancel(self) -> None:
        if self._loop_handle is not None:
            self._loop_handle.cancel()
            self._loop_handle = None
        self.status = TimerStatus.CANCELLED


class TimerRegistry:
    """
    Named timers of a single sequence, armed on the sequence's event loop.

    Each name maps to at most one armed timer, so replacing or adjusting a
    timer never produces two fires. A fired action that raises fails the
    sequence; one that returns Rearm is armed again under the same name.
    """

    def __init__(self, sequence: "Sequence") -> None:
        self._sequence = sequence
        self._timers: Dict[str, TimerHandle] = {}
        self._anonymous = itertools.count(1)

    @property
    def timers(self) -> Mapping[str, TimerHandle]:
        return MappingProxyType(self._timers)

    def __contains__(self, name: str) -> bool:
        return name in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    def add(self, delay: float, action: TimerAction, name: Optional[str] = None) -> str:
        """
        Schedule action(sequence) to run after delay seconds.

        :param delay: Seconds from now.
        :param action: Called with the owning sequence when the timer fires.
        :param name: Timer name; an existing timer with this name is replaced.
        :return: The timer name, generated when none was given.
        """
        if not callable(action):
            raise TypeError(f"Timer action must be callable, got {action!r}")
        if name is None:
            name = f"delay-{next(self._anonymous)}"
        previous = self._timers.pop(name, None)
        if previous is not None:
            previous.cancel()
            logger.debug(f"Replacing timer {name!r}")
        timer = TimerHandle(name=name, delay=delay, action=action)
        self._arm(timer)
        self._timers[name] = timer
        return name

    def adjust(self, name: str, delay: float) -> TimerHandle:
        """
        Re-arm an existing timer to fire delay seconds from now.

        :raises UnknownTimerError: If no timer has that name.
        """
        timer = self._timers.get(name)
        if timer is None:
            raise UnknownTimerError(name)
        if timer._loop_handle is not None:
            timer._loop_handle.cancel()
        timer.delay = delay
        self._arm(timer)
        logger.debug(f"Adjusted timer {name!r} to {delay}s")
        return timer

    def remove(self, name: str) -> bool:
        """
        Cancel and forget a timer. Unknown names are ignored.

        :return: True if a timer was removed.
        """
        timer = self._timers.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug(f"Removed timer {name!r}")
        return True

    def clear(self) -> None:
        """Cancel every outstanding timer."""
        for timer in self._timers.values():
            timer.cancel()
        if self._timers:
            logger.debug(f"Cancelled {len(self._timers)} outstanding timers")
        self._timers.clear()

    def _arm(self, timer: TimerHandle) -> None:
        loop = self._sequence.loop
        timer._loop_handle = loop.call_later(timer.delay, self._fire, timer)
        timer.when = timer._loop_handle.when()
        timer.status = TimerStatus.ACTIVE

    def _fire(self, timer: TimerHandle) -> None:
        if self._timers.get(timer.name) is not timer:
            return
        timer._loop_handle = None
        if self._sequence.is_terminal:
            self._timers.pop(timer.name, None)
            timer.status = TimerStatus.CANCELLED
            return

        logger.debug(f"Timer {timer.name!r} fired")
        outcome = capture(timer.action, self._sequence)
        if outcome.ok and inspect.isawaitable(outcome.value):
            schedule_awaitable(self._sequence.loop, outcome.value, lambda result: self._settle(timer, result))
            return
        self._settle(timer, outcome)

    def _settle(self, timer: TimerHandle, outcome: Result) -> None:
        still_owned = self._timers.get(timer.name) is timer and timer._loop_handle is None
        if isinstance(outcome.value, Rearm) and still_owned and not self._sequence.is_terminal:
            if outcome.value.delay is not None:
                timer.delay = outcome.value.delay
            self._arm(timer)
            logger.debug(f"Timer {timer.name!r} rearmed for {timer.delay}s")
            return
        if still_owned:
            self._timers.pop(timer.name, None)
            timer.status = TimerStatus.FIRED
        if outcome.ok:
            return
        if self._sequence.raised_by_callbacks(outcome.error):
            raise outcome.error
        if not self._sequence.is_terminal:
            self._sequence.fail_with(outcome.error)
