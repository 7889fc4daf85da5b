# tests/unit/test_callbacks.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from stepseq.core.callbacks import CallbackRegistry


def test_callbacks_invoked_in_registration_order(recorder, calls):
    registry = CallbackRegistry("normal")
    for label in ("c1", "c2", "c3"):
        registry.register(recorder(label))

    registry.invoke("seq", 10)
    assert calls == [("c1", ("seq", 10)), ("c2", ("seq", 10)), ("c3", ("seq", 10))]
    assert len(registry) == 3


def test_callback_errors_propagate(recorder, calls):
    registry = CallbackRegistry("error")

    def explode(seq, *args):
        raise RuntimeError("callback failed")

    registry.register(explode)
    registry.register(recorder("after"))

    with pytest.raises(RuntimeError, match="callback failed"):
        registry.invoke("seq")
    assert calls == []


def test_register_requires_callable():
    registry = CallbackRegistry("finally")
    with pytest.raises(TypeError):
        registry.register(None)
    assert "finally" in repr(registry)
