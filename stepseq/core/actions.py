# stepseq/core/actions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Mapping

if TYPE_CHECKING:
    from stepseq.core.sequence import Sequence


class CodeAction:
    """
    Built-in action variant wrapping a callable. The default handler resolves it
    by calling the wrapped function with the Sequence as its only argument.
    Any other queued value is an opaque payload left to custom handlers.
    """

    __slots__ = ("_fn",)

    def __init__(self, fn: Callable[["Sequence"], Any]) -> None:
        if not callable(fn):
            raise TypeError(f"CodeAction requires a callable, got {fn!r}")
        self._fn = fn

    @property
    def fn(self) -> Callable[["Sequence"], Any]:
        return self._fn

    def run(self, sequence: "Sequence") -> Any:
        """
        Execute the action for the given sequence.

        :param sequence: The sequence dispatching this action.
        :return: Whatever the wrapped function returns.
        """
        return self._fn(sequence)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CodeAction) and other._fn == self._fn

    def __hash__(self) -> int:
        return hash(self._fn)

    def __repr__(self) -> str:
        name = getattr(self._fn, "__qualname__", None) or repr(self._fn)
        return f"CodeAction({name})"


def as_action(value: Any) -> Any:
    """
    Tag a value for the queue: plain callables become CodeActions, everything
    else is kept as an opaque payload.
    """
    if isinstance(value, CodeAction) or not callable(value):
        return value
    return CodeAction(value)


@dataclass(frozen=True)
class Request:
    """
    Built once per dispatch and handed to each handler until one resolves it.
    """

    action: Any
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, action: Any, *layers: Mapping[str, Any]) -> "Request":
        merged = {}
        for layer in layers:
            merged.update(layer)
        return cls(action=action, options=MappingProxyType(merged))
