# stepseq/core/callbacks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterator, List

if TYPE_CHECKING:
    from stepseq.core.sequence import Sequence

Continuation = Callable[..., Any]


class CallbackRegistry:
    """
    Ordered list of continuations invoked as (sequence, *args) at one point of
    the sequence lifecycle (normal completion, failure or finally).
    """

    def __init__(self, kind: str) -> None:
        """
        :param kind: Label used in log records and reprs ("normal", "error", "finally").
        """
        self.kind = kind
        self._callbacks: List[Continuation] = []

    def register(self, callback: Continuation) -> None:
        """
        Append a continuation; registration order is invocation order.
        """
        if not callable(callback):
            raise TypeError(f"{self.kind} callback must be callable, got {callback!r}")
        self._callbacks.append(callback)

    def invoke(self, sequence: "Sequence", *args: Any) -> None:
        """
        Call every continuation in order. Errors propagate to the caller.
        """
        for callback in list(self._callbacks):
            callback(sequence, *args)

    def __iter__(self) -> Iterator[Continuation]:
        return iter(list(self._callbacks))

    def __len__(self) -> int:
        return len(self._callbacks)

    def __repr__(self) -> str:
        return f"CallbackRegistry({self.kind!r}, {len(self._callbacks)} callbacks)"
