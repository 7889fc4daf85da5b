# stepseq/core/handlers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Optional, Tuple, Union

from stepseq.core.actions import CodeAction, Request
from stepseq.core.errors import RegistryFrozenError, UnhandledActionError
from stepseq.core.results import HandlerResult, Result
from stepseq.runtime.tasks import schedule_awaitable

if TYPE_CHECKING:
    from stepseq.core.sequence import Sequence

logger = logging.getLogger(__name__)


class Handler(ABC):
    """
    Dispatcher that knows how to execute some family of actions.

    accepts() is the capability check; handle() executes the request and answers
    with a HandlerResult. Returning HandlerResult.deferred() (or None) passes the
    request on to the next handler in the chain.
    """

    def accepts(self, request: Request) -> bool:
        return True

    @abstractmethod
    def handle(self, sequence: "Sequence", request: Request) -> Optional[HandlerResult]:
        raise NotImplementedError()


class FunctionHandler(Handler):
    """
    Adapts a plain callable fn(sequence, request) into a Handler.
    """

    def __init__(
        self,
        fn: Callable[["Sequence", Request], Optional[HandlerResult]],
        accepts: Optional[Callable[[Request], bool]] = None,
    ) -> None:
        self._fn = fn
        self._accepts = accepts

    def accepts(self, request: Request) -> bool:
        if self._accepts is None:
            return True
        return bool(self._accepts(request))

    def handle(self, sequence: "Sequence", request: Request) -> Optional[HandlerResult]:
        return self._fn(sequence, request)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self._fn, '__qualname__', self._fn)!r})"


class CodeHandler(Handler):
    """
    Built-in handler for CodeAction. The action's return value becomes the
    sequence result. An awaitable return value pauses the sequence until it
    completes; its value is then stored and the sequence resumed, or its
    exception fails the sequence.
    """

    def accepts(self, request: Request) -> bool:
        return isinstance(request.action, CodeAction)

    def handle(self, sequence: "Sequence", request: Request) -> HandlerResult:
        value = request.action.run(sequence)
        if not inspect.isawaitable(value):
            return HandlerResult.resolved(value)

        sequence.pause()

        def _settled(outcome: Result) -> None:
            if sequence.is_terminal:
                return
            if not outcome.ok:
                sequence.fail_with(outcome.error)
                return
            sequence.result = outcome.value
            sequence.resume()

        schedule_awaitable(sequence.loop, value, _settled)
        return HandlerResult.skip()


HandlerLike = Union[Handler, Callable[["Sequence", Request], Optional[HandlerResult]]]


def as_handler(handler: HandlerLike) -> Handler:
    if isinstance(handler, Handler):
        return handler
    if callable(handler):
        return FunctionHandler(handler)
    raise TypeError(f"Expected a Handler or callable, got {handler!r}")


class HandlerRegistry:
    """
    Shared list of handlers that several sequences can opt into by passing the
    registry to their constructor. Populate it at start-up; it is frozen the
    first time a sequence binds to it and is read-only from then on.
    """

    def __init__(self, handlers: Iterable[HandlerLike] = ()) -> None:
        self._handlers: List[Handler] = []
        self._frozen = False
        for handler in handlers:
            self.register(handler)

    def register(self, handler: HandlerLike) -> Handler:
        """
        Add a handler. Later registrations are tried first.

        :raises RegistryFrozenError: If the registry has been frozen.
        """
        if self._frozen:
            raise RegistryFrozenError("Cannot register handlers into a frozen registry")
        adapted = as_handler(handler)
        self._handlers.append(adapted)
        return adapted

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def handlers(self) -> Tuple[Handler, ...]:
        """Handlers in registration order."""
        return tuple(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


class HandlerChain:
    """
    The ordered handlers consulted for each dispatch: the sequence's own
    handlers (most recent first), then the shared registry's (most recent
    first), then the built-in CodeHandler.
    """

    def __init__(self, registry: Optional[HandlerRegistry] = None) -> None:
        self._local: List[Handler] = []
        self._registry = registry
        self._builtin: Handler = CodeHandler()
        if registry is not None:
            registry.freeze()

    def add(self, handler: HandlerLike) -> Handler:
        adapted = as_handler(handler)
        self._local.append(adapted)
        return adapted

    def __iter__(self) -> Iterator[Handler]:
        yield from reversed(self._local)
        if self._registry is not None:
            yield from reversed(self._registry.handlers)
        yield self._builtin

    def dispatch(self, sequence: "Sequence", request: Request) -> HandlerResult:
        """
        Offer the request to each handler until one does not defer.

        :raises UnhandledActionError: If every handler deferred.
        """
        for handler in self:
            if not handler.accepts(request):
                continue
            outcome = handler.handle(sequence, request)
            if outcome is None:
                continue
            if not isinstance(outcome, HandlerResult):
                raise TypeError(f"{handler!r} returned {outcome!r}, expected a HandlerResult")
            if outcome.is_deferred:
                continue
            logger.debug(f"{handler!r} handled {request.action!r} ({outcome.kind.name})")
            return outcome
        raise UnhandledActionError(request.action)
