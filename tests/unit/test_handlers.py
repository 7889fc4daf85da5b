# tests/unit/test_handlers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from unittest.mock import MagicMock

import pytest

from stepseq.core.actions import CodeAction, Request
from stepseq.core.errors import RegistryFrozenError, UnhandledActionError
from stepseq.core.handlers import (
    CodeHandler,
    FunctionHandler,
    Handler,
    HandlerChain,
    HandlerRegistry,
    as_handler,
)
from stepseq.core.results import HandlerResult


class _Deferring(Handler):
    def __init__(self, calls, label):
        self.calls = calls
        self.label = label

    def handle(self, sequence, request):
        self.calls.append(self.label)
        return HandlerResult.deferred()


def test_code_handler_resolves_code_actions():
    handler = CodeHandler()
    request = Request(action=CodeAction(lambda seq: seq * 2))
    assert handler.accepts(request)
    assert handler.handle(21, request) == HandlerResult.resolved(42)
    assert not handler.accepts(Request(action="payload"))


def test_function_handler_with_capability_check():
    fn = MagicMock(return_value=HandlerResult.skip())
    handler = FunctionHandler(fn, accepts=lambda req: req.action == "mine")
    assert handler.accepts(Request(action="mine"))
    assert not handler.accepts(Request(action="other"))
    request = Request(action="mine")
    assert handler.handle("seq", request).is_skip
    fn.assert_called_once_with("seq", request)


def test_as_handler():
    handler = CodeHandler()
    assert as_handler(handler) is handler
    assert isinstance(as_handler(lambda seq, req: None), FunctionHandler)
    with pytest.raises(TypeError):
        as_handler(42)


def test_chain_tries_handlers_most_recent_first(calls):
    chain = HandlerChain()
    chain.add(_Deferring(calls, "first"))
    chain.add(_Deferring(calls, "second"))
    chain.add(_Deferring(calls, "third"))

    outcome = chain.dispatch("seq", Request(action=CodeAction(lambda seq: "done")))
    assert calls == ["third", "second", "first"]
    assert outcome.value == "done"


def test_chain_stops_at_first_resolving_handler(calls):
    chain = HandlerChain()
    chain.add(_Deferring(calls, "old"))
    chain.add(lambda seq, req: HandlerResult.resolved("claimed"))

    outcome = chain.dispatch("seq", Request(action="payload"))
    assert outcome.value == "claimed"
    assert calls == []


def test_chain_treats_none_as_deferred():
    chain = HandlerChain()
    chain.add(lambda seq, req: HandlerResult.resolved("fallback"))
    chain.add(lambda seq, req: None)
    assert chain.dispatch("seq", Request(action="x")).value == "fallback"


def test_chain_raises_when_nobody_claims():
    chain = HandlerChain()
    chain.add(lambda seq, req: HandlerResult.deferred())
    with pytest.raises(UnhandledActionError) as exc_info:
        chain.dispatch("seq", Request(action=("session", "state")))
    assert exc_info.value.action == ("session", "state")


def test_chain_rejects_malformed_outcome():
    chain = HandlerChain()
    chain.add(lambda seq, req: "not a result")
    with pytest.raises(TypeError):
        chain.dispatch("seq", Request(action="x"))


def test_registry_consulted_after_local_handlers(calls):
    registry = HandlerRegistry()
    registry.register(_Deferring(calls, "shared-1"))
    registry.register(_Deferring(calls, "shared-2"))

    chain = HandlerChain(registry)
    chain.add(_Deferring(calls, "local"))

    handlers = list(chain)
    assert isinstance(handlers[-1], CodeHandler)
    with pytest.raises(UnhandledActionError):
        chain.dispatch("seq", Request(action="payload"))
    assert calls == ["local", "shared-2", "shared-1"]


def test_registry_frozen_once_bound():
    registry = HandlerRegistry([lambda seq, req: None])
    assert len(registry) == 1
    assert not registry.frozen

    HandlerChain(registry)
    assert registry.frozen
    with pytest.raises(RegistryFrozenError):
        registry.register(lambda seq, req: None)


def test_registry_shared_between_chains():
    registry = HandlerRegistry()
    registry.register(FunctionHandler(lambda seq, req: HandlerResult.resolved(seq), accepts=lambda req: req.action == "whoami"))
    registry.freeze()

    first, second = HandlerChain(registry), HandlerChain(registry)
    assert first.dispatch("a", Request(action="whoami")).value == "a"
    assert second.dispatch("b", Request(action="whoami")).value == "b"
