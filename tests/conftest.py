# tests/conftest.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import threading
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def calls():
    """A list that actions and callbacks append to, to check ordering."""
    return []


@pytest.fixture
def recorder(calls):
    """Returns a factory producing callables that log (label, args) into `calls`."""

    def _factory(label, returns=None):
        def _record(*args):
            calls.append((label, args))
            return returns

        return _record

    return _factory


@pytest.fixture
def sequence_factory():
    """Returns a factory function building sequences for tests."""
    from stepseq.core.sequence import Sequence

    def _factory(*actions, **options):
        return Sequence(*actions, **options)

    return _factory


@pytest.fixture
def mock_callback():
    """A normal/error/finally callback spy."""
    return MagicMock(name="callback")


@pytest.fixture
def mock_error_callback():
    return MagicMock(name="error_callback")


@pytest.fixture
def mock_finally_callback():
    return MagicMock(name="finally_callback")


@pytest.fixture
def error_classes():
    """Provides a tuple of error classes for quick reference."""
    from stepseq.core.errors import (
        ImbalancedResumeError,
        RegistryFrozenError,
        SequenceError,
        SequenceFailedError,
        UnhandledActionError,
        UnknownTimerError,
    )

    return (
        SequenceError,
        UnhandledActionError,
        UnknownTimerError,
        ImbalancedResumeError,
        RegistryFrozenError,
        SequenceFailedError,
    )


@pytest.fixture(autouse=True)
def cleanup_threads():
    yield
    # Cleanup any remaining threads after each test
    for thread in threading.enumerate():
        if thread != threading.current_thread() and thread.is_alive():
            thread.join(timeout=1.0)
