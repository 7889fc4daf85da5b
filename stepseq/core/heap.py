# stepseq/core/heap.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Optional


class Heap(MutableMapping):
    """
    Shared key/value context owned by a single Sequence. Actions and callbacks
    use it to pass data along the chain. Keys are strings; writing an existing
    key overwrites it and nothing is ever removed unless deleted explicitly.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        if not isinstance(key, str):
            raise TypeError(f"Heap keys must be str, not {type(key).__name__}")
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Heap({self._data!r})"
