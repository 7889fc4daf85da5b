# stepseq/plugins/nested.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from typing import Any

from stepseq.core.actions import Request
from stepseq.core.handlers import Handler
from stepseq.core.results import HandlerResult
from stepseq.core.sequence import Sequence, SequenceState


class NestedSequenceHandler(Handler):
    """
    Lets a Sequence be queued as an action of another Sequence.

    The parent is paused while the child runs. When the child finishes, its
    result becomes the parent's result and the parent resumes; when it fails,
    the parent fails with the same arguments.
    """

    def __init__(self, share_heap: bool = False) -> None:
        """
        :param share_heap: Seed the child's heap with a copy of the parent's
                           before it starts.
        """
        self.share_heap = share_heap

    def accepts(self, request: Request) -> bool:
        return isinstance(request.action, Sequence)

    def handle(self, parent: Sequence, request: Request) -> HandlerResult:
        child: Sequence = request.action
        if child.state is not SequenceState.PENDING:
            raise ValueError(f"Nested {child!r} has already been started")
        if self.share_heap:
            child.heap.update(parent.heap)

        def _child_finished(seq: Sequence, *args: Any) -> None:
            parent.result = seq.result
            parent.resume()

        def _child_failed(seq: Sequence, *args: Any) -> None:
            if seq.error is not None:
                parent.error = seq.error
            parent.failed(*args)

        parent.pause()
        child.add_callback(_child_finished)
        child.add_error_callback(_child_failed)
        child.run()
        return HandlerResult.skip()
