# stepseq/core/sequence.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Deque, Dict, Mapping, Optional, Tuple

from stepseq.core.actions import Request, as_action
from stepseq.core.callbacks import CallbackRegistry, Continuation
from stepseq.core.errors import ImbalancedResumeError, SequenceFailedError
from stepseq.core.handlers import HandlerChain, HandlerLike, HandlerRegistry
from stepseq.core.heap import Heap
from stepseq.core.results import capture
from stepseq.runtime.timers import TimerAction, TimerHandle, TimerRegistry

logger = logging.getLogger(__name__)


class SequenceState(Enum):
    """Lifecycle of a Sequence. FINISHED and FAILED are terminal."""

    PENDING = auto()  # Built, run() not called yet
    RUNNING = auto()  # Dispatching queued actions
    PAUSED = auto()  # Running but held by outstanding pause() calls
    FINISHED = auto()  # Completed normally
    FAILED = auto()  # Completed with an error


# Option keys forwarded once to the method of the same name at construction.
FORWARDED_OPTIONS = (
    "add_callback",
    "add_error_callback",
    "add_finally_callback",
    "add_action",
    "add_handler",
    "add_delay",
)

# Entry points that foreign threads may marshal onto the owning loop with post().
POSTABLE = frozenset(
    {
        "pause",
        "resume",
        "finished",
        "finish",
        "failed",
        "fail",
        "finalize",
        "next",
        "add_action",
        "add_delay",
        "adjust_delay",
        "remove_delay",
    }
)


class Sequence:
    """
    Runs a queue of actions one at a time in a single execution context.

    Each action is offered to the handler chain; its outcome is stored in
    ``result`` and the next action follows. Any action may pause the sequence,
    queue more actions, write to the shared ``heap``, arm timers or end the
    sequence early with finished() / failed(). When the queue runs dry the
    sequence finishes on its own.

    Completion runs the normal callbacks (or the error callbacks on failure),
    then the finally callbacks, each in registration order with
    ``(sequence, *args)``.

    Example:
        seq = Sequence(
            lambda s: s.heap_set("a", 5),
            lambda s: s.finished(s.heap["a"] * 2),
            add_callback=lambda s, value: print(value),
        )
        seq.run()
    """

    def __init__(
        self,
        *actions: Any,
        registry: Optional[HandlerRegistry] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        **options: Any,
    ) -> None:
        """
        :param actions: Initial actions. A leading mapping is read as options.
        :param registry: Shared handlers consulted after this sequence's own.
        :param loop: Event loop for timers and awaitables; defaults to the running loop.
        :param options: auto_pause, auto_resume, forwarded add_* calls, and any
                        custom keys for handlers to read.
        """
        if actions and isinstance(actions[0], Mapping):
            options = {**actions[0], **options}
            actions = actions[1:]

        self._status = SequenceState.PENDING
        self._pause_count = 0
        self._dispatching = False
        self._in_normal_callbacks = False
        self._callback_error: Optional[BaseException] = None
        self._queue: Deque[Tuple[Any, Dict[str, Any]]] = deque()
        self._handlers = HandlerChain(registry)
        self._callbacks = CallbackRegistry("normal")
        self._error_callbacks = CallbackRegistry("error")
        self._finally_callbacks = CallbackRegistry("finally")
        self._loop = loop
        self._timers = TimerRegistry(self)
        self._done = asyncio.Event()

        self.heap = Heap()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.terminal_args: Tuple[Any, ...] = ()

        self._auto_pause = bool(options.pop("auto_pause", False))
        self._auto_resume = bool(options.pop("auto_resume", False))
        forwarded = {key: options.pop(key) for key in FORWARDED_OPTIONS if key in options}
        self._options: Dict[str, Any] = dict(options)

        for action in actions:
            self.add_action(action)
        for key, value in forwarded.items():
            if key == "add_delay" and isinstance(value, (tuple, list)):
                self.add_delay(*value)
            else:
                getattr(self, key)(value)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SequenceState:
        if self._status is SequenceState.RUNNING and self._pause_count > 0:
            return SequenceState.PAUSED
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status in (SequenceState.FINISHED, SequenceState.FAILED)

    @property
    def pause_count(self) -> int:
        return self._pause_count

    @property
    def options(self) -> Mapping[str, Any]:
        return MappingProxyType(self._options)

    @property
    def auto_pause(self) -> bool:
        return self._auto_pause

    @property
    def auto_resume(self) -> bool:
        return self._auto_resume

    @property
    def actions(self) -> Tuple[Any, ...]:
        """Actions still waiting in the queue, head first."""
        return tuple(action for action, _ in self._queue)

    @property
    def callbacks(self) -> CallbackRegistry:
        return self._callbacks

    @property
    def error_callbacks(self) -> CallbackRegistry:
        return self._error_callbacks

    @property
    def finally_callbacks(self) -> CallbackRegistry:
        return self._finally_callbacks

    @property
    def handlers(self) -> HandlerChain:
        return self._handlers

    @property
    def timers(self) -> Mapping[str, TimerHandle]:
        return self._timers.timers

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """
        The event loop that owns this sequence's timers and awaitables.

        :raises RuntimeError: If none was given and no loop is running.
        """
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def __repr__(self) -> str:
        label = self._options.get("name", hex(id(self)))
        return f"<Sequence {label} {self.state.name}>"

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def add_action(self, action: Any, **options: Any) -> "Sequence":
        """
        Queue an action. Callables become code actions; anything else is an
        opaque payload for a custom handler.

        :param options: Per-action options layered over the sequence options
                        in the dispatch Request.
        """
        if self.is_terminal:
            logger.warning(f"{self!r} is terminal; ignoring action {action!r}")
            return self
        self._queue.append((as_action(action), options))
        return self

    def add_handler(self, handler: HandlerLike) -> "Sequence":
        """Register a handler; the most recently added one is tried first."""
        self._handlers.add(handler)
        return self

    def add_callback(self, callback: Continuation) -> "Sequence":
        self._callbacks.register(callback)
        return self

    def add_error_callback(self, callback: Continuation) -> "Sequence":
        self._error_callbacks.register(callback)
        return self

    def add_finally_callback(self, callback: Continuation) -> "Sequence":
        self._finally_callbacks.register(callback)
        return self

    def heap_set(self, key: str, value: Any) -> "Sequence":
        self.heap[key] = value
        return self

    def heap_index(self, key: str, default: Any = None) -> Any:
        return self.heap.get(key, default)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def add_delay(self, delay: float, action: TimerAction, name: Optional[str] = None) -> "Sequence":
        """
        Run action(sequence) after delay seconds. A timer that already has this
        name is cancelled and replaced. The action may return Rearm to fire again.
        """
        if self.is_terminal:
            logger.warning(f"{self!r} is terminal; ignoring delay {name!r}")
            return self
        self._timers.add(delay, action, name)
        return self

    def adjust_delay(self, name: str, delay: float) -> "Sequence":
        """
        Reschedule a named timer to fire delay seconds from now.

        :raises UnknownTimerError: If no timer has that name.
        """
        self._timers.adjust(name, delay)
        return self

    def remove_delay(self, name: str) -> bool:
        """Cancel a named timer. Returns False if there was none."""
        return self._timers.remove(name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> "Sequence":
        """
        Start dispatching. Only the first call has an effect.
        """
        if self._status is not SequenceState.PENDING:
            logger.debug(f"{self!r} already started; run() ignored")
            return self
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                pass  # no loop: synchronous use until a timer or awaitable needs one
        self._status = SequenceState.RUNNING
        logger.debug(f"{self!r} started with {len(self._queue)} queued actions")
        self.next()
        return self

    def pause(self) -> None:
        """Hold dispatch until a matching resume(). Calls nest."""
        if self.is_terminal:
            return
        self._pause_count += 1

    def resume(self) -> None:
        """
        Undo one pause(). Dispatch continues once every pause has been matched.

        :raises ImbalancedResumeError: If there is no outstanding pause.
        """
        if self.is_terminal:
            return
        if self._pause_count == 0:
            raise ImbalancedResumeError(f"resume() on {self!r} without a matching pause()")
        self._pause_count -= 1
        if self._pause_count == 0 and self._status is SequenceState.RUNNING:
            self.next()

    def next(self) -> None:
        """
        Dispatch queued actions until the sequence pauses, ends, or the queue
        empties, in which case it finishes. Re-entrant calls made while a
        dispatch is in progress return immediately and the active loop carries on.
        """
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._status is SequenceState.RUNNING and self._pause_count == 0:
                if not self._queue:
                    self.finished()
                    break
                action, action_options = self._queue.popleft()
                self._dispatch(action, action_options)
        finally:
            self._dispatching = False

    def _dispatch(self, action: Any, action_options: Dict[str, Any]) -> None:
        request = Request.build(action, self._options, action_options)
        if self._auto_pause:
            self.pause()

        outcome = capture(self._handlers.dispatch, self, request)
        if not outcome.ok:
            if self.raised_by_callbacks(outcome.error):
                raise outcome.error
            self.fail_with(outcome.error)
            return
        if not outcome.value.is_skip and not self.is_terminal:
            self.result = outcome.value.value

        if self._auto_resume and not self.is_terminal:
            resumed = capture(self.resume)
            if not resumed.ok:
                if self.raised_by_callbacks(resumed.error):
                    raise resumed.error
                self.fail_with(resumed.error)

    def finished(self, *args: Any) -> None:
        """
        End the sequence successfully. Normal callbacks run in order; if one
        raises, the rest are skipped and the sequence fails instead. Finally
        callbacks run last.
        """
        if self.is_terminal:
            logger.debug(f"{self!r} already ended; finished() ignored")
            return
        self._terminate(SequenceState.FINISHED, args)
        try:
            self._in_normal_callbacks = True
            try:
                for callback in self._callbacks:
                    outcome = capture(callback, self, *args)
                    if self._status is SequenceState.FAILED:
                        # The callback failed the sequence itself.
                        if not outcome.ok:
                            if self.raised_by_callbacks(outcome.error):
                                raise outcome.error
                            logger.error(f"{self!r} already failed; dropping callback error: {outcome.error}")
                        return
                    if not outcome.ok:
                        self.fail_with(outcome.error)
                        return
            finally:
                self._in_normal_callbacks = False
            self.finalize(*args)
        finally:
            self._done.set()

    def failed(self, *args: Any) -> None:
        """
        End the sequence with an error. Error callbacks run in order, then the
        finally callbacks. Exceptions raised by either propagate to the caller.
        """
        switching = self._status is SequenceState.FINISHED and self._in_normal_callbacks
        if self.is_terminal and not switching:
            logger.debug(f"{self!r} already ended; failed() ignored")
            return
        self._terminate(SequenceState.FAILED, args)
        try:
            try:
                self._error_callbacks.invoke(self, *args)
            except BaseException as error:
                self._callback_error = error
                raise
            self.finalize(*args)
        finally:
            self._done.set()

    finish = finished
    fail = failed

    def finalize(self, *args: Any) -> None:
        """Invoke the finally callbacks in order. Exceptions propagate."""
        try:
            self._finally_callbacks.invoke(self, *args)
        except BaseException as error:
            self._callback_error = error
            raise

    def raised_by_callbacks(self, error: BaseException) -> bool:
        """
        True if error escaped this sequence's error or finally callbacks. Such
        errors have no further stage to be routed to and must propagate.
        """
        return error is not None and error is self._callback_error

    def fail_with(self, error: BaseException) -> None:
        """
        Record error as the cause of failure and fail with its message.
        """
        logger.error(f"{self!r} failed: {error}")
        self.error = error
        self.failed(str(error))

    def _terminate(self, status: SequenceState, args: Tuple[Any, ...]) -> None:
        self._status = status
        self.terminal_args = args
        self._queue.clear()
        self._timers.clear()
        logger.debug(f"{self!r} ended")

    # ------------------------------------------------------------------
    # Loop integration
    # ------------------------------------------------------------------

    async def wait(self) -> Any:
        """
        Wait for the sequence to end.

        :return: The sequence result if it finished.
        :raises SequenceFailedError: With the failure arguments if it failed.
        """
        await self._done.wait()
        if self._status is SequenceState.FAILED:
            raise SequenceFailedError(*self.terminal_args) from self.error
        return self.result

    def post(self, name: str, *args: Any) -> None:
        """
        Schedule one of the lifecycle entry points on the owning loop. This is
        the only supported way to drive a sequence from another thread.

        :param name: Method name, e.g. "resume" or "finished".
        :raises ValueError: If name is not a postable entry point.
        """
        if name not in POSTABLE:
            raise ValueError(f"{name!r} cannot be posted to a sequence")
        if self._loop is None:
            raise RuntimeError(f"{self!r} is not bound to an event loop")
        self._loop.call_soon_threadsafe(getattr(self, name), *args)
