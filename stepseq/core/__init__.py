"""
Core package providing the sequence engine.

Architecture:
- Sequence orchestrates the action queue, pause counter and lifecycle
- HandlerChain resolves each queued action
- CallbackRegistry holds the normal, error and finally continuations
- Heap carries shared context between actions

Design Patterns:
- Chain of Responsibility for action handlers
- Command Pattern for queued actions
- Observer Pattern for completion callbacks
"""

# Import order matters to avoid circular dependencies
from .errors import (
    ImbalancedResumeError,
    RegistryFrozenError,
    SequenceError,
    SequenceFailedError,
    UnhandledActionError,
    UnknownTimerError,
)
from .results import HandlerResult, OutcomeKind, Rearm, Result, capture
from .heap import Heap
from .actions import CodeAction, Request, as_action
from .callbacks import CallbackRegistry
from .handlers import CodeHandler, FunctionHandler, Handler, HandlerChain, HandlerRegistry
from .sequence import Sequence, SequenceState

__all__ = [
    # Errors
    "ImbalancedResumeError",
    "RegistryFrozenError",
    "SequenceError",
    "SequenceFailedError",
    "UnhandledActionError",
    "UnknownTimerError",
    # Outcomes
    "HandlerResult",
    "OutcomeKind",
    "Rearm",
    "Result",
    "capture",
    # Building blocks
    "Heap",
    "CodeAction",
    "Request",
    "as_action",
    "CallbackRegistry",
    "CodeHandler",
    "FunctionHandler",
    "Handler",
    "HandlerChain",
    "HandlerRegistry",
    # Engine
    "Sequence",
    "SequenceState",
]
