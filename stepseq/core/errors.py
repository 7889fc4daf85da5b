# stepseq/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details


class SequenceError(Exception):
    """
    Base exception class for errors raised by the sequence engine.
    """


class UnhandledActionError(SequenceError):
    """
    Raised when every handler in the chain deferred a queued action.
    """

    def __init__(self, action) -> None:
        super().__init__(f"No handler accepted action {action!r}")
        self.action = action


class UnknownTimerError(SequenceError, KeyError):
    """
    Raised when a named timer operation targets a timer that does not exist.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"No timer named {name!r}")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class ImbalancedResumeError(SequenceError):
    """
    Raised when resume() is called more times than pause().
    """


class RegistryFrozenError(SequenceError):
    """
    Raised when registering a handler into a registry that is read-only.
    """


class SequenceFailedError(SequenceError):
    """
    Raised by Sequence.wait() when the awaited sequence reached the Failed state.
    The positional arguments are the ones given to failed().
    """
