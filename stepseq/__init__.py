"""stepseq: asynchronous step sequencer

Runs an ordered list of actions one at a time inside a single logical
execution context. Any action may pause the sequence, queue more actions,
store shared state in the heap, register completion callbacks, or arm and
disarm named timers.

Responsibilities:
    - Action queue dispatch through a pluggable handler chain
    - Pause/resume bookkeeping
    - Normal, error and finally callback registries
    - Per-sequence shared heap
    - Named timers with rearm support

Interactions:
    - asyncio event loop for timers, awaitable actions and cross-thread posts
    - Logging system for diagnostics

Cross-cutting Concerns:
    Thread Safety:
        - A sequence belongs to one event loop thread
        - Other threads drive it through Sequence.post()

    Error Handling:
        - Structured error hierarchy rooted at SequenceError
        - Action, handler, normal callback and timer errors fail the sequence
        - Error and finally callback errors propagate to the caller

    Logging:
        - Standard library logging, one logger per module
"""

from stepseq.core import (
    CodeAction,
    Handler,
    HandlerRegistry,
    HandlerResult,
    Heap,
    ImbalancedResumeError,
    Rearm,
    RegistryFrozenError,
    Request,
    Sequence,
    SequenceError,
    SequenceFailedError,
    SequenceState,
    UnhandledActionError,
    UnknownTimerError,
)

__version__ = "0.1.0"

__all__ = [
    "CodeAction",
    "Handler",
    "HandlerRegistry",
    "HandlerResult",
    "Heap",
    "ImbalancedResumeError",
    "Rearm",
    "RegistryFrozenError",
    "Request",
    "Sequence",
    "SequenceError",
    "SequenceFailedError",
    "SequenceState",
    "UnhandledActionError",
    "UnknownTimerError",
]
