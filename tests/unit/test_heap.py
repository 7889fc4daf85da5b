# tests/unit/test_heap.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import pytest

from stepseq.core.heap import Heap


def test_heap_set_and_overwrite():
    heap = Heap()
    heap["a"] = 1
    heap["a"] = 2
    assert heap["a"] == 2
    assert len(heap) == 1
    assert list(heap) == ["a"]


def test_heap_initial_values():
    heap = Heap({"x": 1, "y": [1, 2]})
    assert dict(heap) == {"x": 1, "y": [1, 2]}
    assert heap.get("missing") is None


def test_heap_rejects_non_string_keys():
    heap = Heap()
    with pytest.raises(TypeError):
        heap[1] = "one"


def test_heap_explicit_delete():
    heap = Heap({"a": 1})
    del heap["a"]
    assert "a" not in heap
    with pytest.raises(KeyError):
        heap["a"]
