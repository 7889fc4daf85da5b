# stepseq/runtime/tasks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from stepseq.core.errors import SequenceError
from stepseq.core.results import Result


def schedule_awaitable(
    loop: asyncio.AbstractEventLoop,
    awaitable: Awaitable[Any],
    on_settled: Callable[[Result], None],
) -> asyncio.Future:
    """
    Drive an awaitable on the loop and report its value or error as a Result
    once it completes. The callback runs on the loop thread.

    :param loop: Event loop that owns the sequence.
    :param awaitable: Coroutine, task or future returned by an action.
    :param on_settled: Receives the Result when the awaitable is done.
    :return: The future wrapping the awaitable.
    """
    future = asyncio.ensure_future(awaitable, loop=loop)

    def _done(fut: asyncio.Future) -> None:
        if fut.cancelled():
            on_settled(Result(error=SequenceError(f"{fut!r} was cancelled")))
        elif fut.exception() is not None:
            on_settled(Result(error=fut.exception()))
        else:
            on_settled(Result(value=fut.result()))

    future.add_done_callback(_done)
    return future
