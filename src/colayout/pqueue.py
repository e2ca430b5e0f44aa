"""
Priority queue backed by a pairing heap.

Supports decrease-key through the heap node handed back by push(), which is
what the Dijkstra search in shortestpaths needs.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar("T")


class PairingHeap(Generic[T]):
    """A node of a pairing heap; the root node represents the whole heap."""

    __slots__ = ('elem', 'subheaps')

    def __init__(self, elem: Optional[T] = None):
        self.elem = elem
        self.subheaps: list[PairingHeap[T]] = []

    def empty(self) -> bool:
        return self.elem is None

    def __iter__(self) -> Iterator[T]:
        stack: list[PairingHeap[T]] = [self]
        while stack:
            h = stack.pop()
            if h.elem is not None:
                yield h.elem
                stack.extend(h.subheaps)

    def count(self) -> int:
        return sum(1 for _ in self)

    def is_heap(self, less_than: Callable[[T, T], bool]) -> bool:
        """Check the heap property over the whole tree."""
        stack: list[PairingHeap[T]] = [self]
        while stack:
            h = stack.pop()
            for s in h.subheaps:
                if s.empty():
                    continue
                if less_than(s.elem, h.elem):
                    return False
                stack.append(s)
        return True

    def merge(self, other: PairingHeap[T], less_than: Callable[[T, T], bool]) -> PairingHeap[T]:
        """Link two heaps, returning the new root."""
        if self.empty():
            return other
        if other.empty():
            return self
        if less_than(self.elem, other.elem):
            self.subheaps.append(other)
            return self
        other.subheaps.append(self)
        return other

    def remove_min(self, less_than: Callable[[T, T], bool]) -> PairingHeap[T]:
        """
        Detach the root and rebuild from its subheaps.

        Standard two-pass pairing: merge adjacent pairs left to right, then
        fold the pairs right to left.
        """
        subs = self.subheaps
        if not subs:
            return PairingHeap(None)
        paired = [
            subs[i].merge(subs[i + 1], less_than) if i + 1 < len(subs) else subs[i]
            for i in range(0, len(subs), 2)
        ]
        root = paired.pop()
        while paired:
            root = paired.pop().merge(root, less_than)
        return root


class PriorityQueue(Generic[T]):
    """
    Min priority queue.

    O(1) push and top, O(log n) amortised pop and reduce_key.
    """

    def __init__(self, less_than: Callable[[T, T], bool]):
        self.root: Optional[PairingHeap[T]] = None
        self.less_than = less_than

    def empty(self) -> bool:
        return self.root is None or self.root.empty()

    def top(self) -> Optional[T]:
        return None if self.empty() else self.root.elem

    def push(self, *items: T) -> Optional[PairingHeap[T]]:
        """Push items; returns the heap node of the last one."""
        node = None
        for item in items:
            node = PairingHeap(item)
            self.root = node if self.empty() else self.root.merge(node, self.less_than)
        return node

    def pop(self) -> Optional[T]:
        if self.empty():
            return None
        item = self.root.elem
        self.root = self.root.remove_min(self.less_than)
        return item

    def reduce_key(
        self,
        heap_node: PairingHeap[T],
        new_key: T,
        set_heap_node: Optional[Callable[[T, PairingHeap[T]], None]] = None,
    ) -> None:
        """
        Replace the element held by heap_node with a smaller one.

        The old node keeps its position in the tree but takes over the
        contents of its own rebuilt subtree; the new key goes in a fresh node.
        set_heap_node is told about every element whose node changed.
        """
        rest = heap_node.remove_min(self.less_than)
        heap_node.elem = rest.elem
        heap_node.subheaps = rest.subheaps
        if set_heap_node is not None and heap_node.elem is not None:
            set_heap_node(heap_node.elem, heap_node)

        fresh = PairingHeap(new_key)
        if set_heap_node is not None:
            set_heap_node(new_key, fresh)
        self.root = self.root.merge(fresh, self.less_than)

    def is_heap(self) -> bool:
        return self.root is None or self.root.is_heap(self.less_than)

    def count(self) -> int:
        return self.root.count() if self.root else 0

    def __len__(self) -> int:
        return self.count()
