"""Small shared utilities: an addressable max-priority queue and CSR pointer helpers."""

from __future__ import annotations

from itertools import accumulate
from typing import Hashable, Iterable


class MaxPriorityQueue:
    """A binary max-heap of nodes whose keys can be changed or removed in place.

    Nodes are any hashable identifiers. Among equal keys the order follows
    the heap's structure, not insertion order.
    """

    def __init__(self, maxnodes: int | None = None) -> None:
        if maxnodes is not None and maxnodes < 0:
            raise ValueError(f"maxnodes must not be negative, got {maxnodes}")
        self._maxnodes = maxnodes
        self._heap: list[tuple[float, Hashable]] = []
        self._locator: dict[Hashable, int] = {}

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, node: Hashable) -> bool:
        return node in self._locator

    def __repr__(self) -> str:
        return f"MaxPriorityQueue(nnodes={len(self._heap)})"

    def _put(self, i: int, key: float, node: Hashable) -> None:
        self._heap[i] = (key, node)
        self._locator[node] = i

    def _sift_up(self, i: int, key: float, node: Hashable) -> None:
        heap = self._heap
        while i > 0:
            parent = (i - 1) >> 1
            if key > heap[parent][0]:
                self._put(i, *heap[parent])
                i = parent
            else:
                break
        self._put(i, key, node)

    def _sift_down(self, i: int, key: float, node: Hashable) -> None:
        heap = self._heap
        nnodes = len(heap)
        while (j := 2 * i + 1) < nnodes:
            if heap[j][0] > key:
                if j + 1 < nnodes and heap[j + 1][0] > heap[j][0]:
                    j += 1
            elif j + 1 < nnodes and heap[j + 1][0] > key:
                j += 1
            else:
                break
            self._put(i, *heap[j])
            i = j
        self._put(i, key, node)

    def insert(self, node, key):
        """Add ``node`` with priority ``key``."""
        if node in self._locator:
            raise ValueError(f"node {node!r} is already in the queue")
        if self._maxnodes is not None and len(self._heap) >= self._maxnodes:
            raise OverflowError(f"queue is full ({self._maxnodes} nodes)")
        self._heap.append((key, node))
        self._sift_up(len(self._heap) - 1, key, node)

    def delete(self, node):
        """Remove ``node`` from the queue."""
        i = self._locator.pop(node)
        last_key, last_node = self._heap.pop()
        if i < len(self._heap):
            old_key = self._heap[i][0]
            if last_key > old_key:
                self._sift_up(i, last_key, last_node)
            else:
                self._sift_down(i, last_key, last_node)

    def update(self, node, newkey):
        """Change the priority of ``node`` to ``newkey``."""
        i = self._locator[node]
        old_key = self._heap[i][0]
        if newkey > old_key:
            self._sift_up(i, newkey, node)
        else:
            self._sift_down(i, newkey, node)

    def get_top(self):
        """Remove and return the node with the largest key."""
        if not self._heap:
            raise IndexError("get_top from an empty queue")
        _, top = self._heap[0]
        del self._locator[top]
        last_key, last_node = self._heap.pop()
        if self._heap:
            self._sift_down(0, last_key, last_node)
        return top

    def see_top(self):
        """Return the node with the largest key, or None if the queue is empty."""
        return self._heap[0][1] if self._heap else None

    def see_top_key(self):
        """Return the largest key, or None if the queue is empty."""
        return self._heap[0][0] if self._heap else None

    def reset(self):
        """Remove every node."""
        self._heap.clear()
        self._locator.clear()


def make_csr(counts: Iterable[int]) -> list[int]:
    """Turn per-row counts into a row-pointer array one longer than ``counts``."""
    return list(accumulate(counts, initial=0))


def shift_csr(ptr: Iterable[int]) -> list[int]:
    """Undo the advance of every row pointer by one row made while filling rows."""
    ptr = list(ptr)
    if not ptr:
        return []
    return [0] + ptr[:-1]