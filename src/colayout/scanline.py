"""
Ordered scanline for the overlap constraint sweep.

A thin wrapper around sortedcontainers.SortedKeyList giving the
neighbour walks the sweep needs. Items are ordered by (pos, order) so that
items at the same position keep a stable, deterministic order.
"""

from __future__ import annotations

from typing import Generic, Iterator, Protocol, TypeVar

from sortedcontainers import SortedKeyList


class Positioned(Protocol):
    pos: float
    order: int


T = TypeVar("T", bound=Positioned)


def _key(item: Positioned) -> tuple[float, int]:
    return (item.pos, item.order)


class Scanline(Generic[T]):
    """Items currently crossed by the sweep, in position order."""

    def __init__(self):
        self._data: SortedKeyList = SortedKeyList(key=_key)

    def insert(self, item: T) -> None:
        self._data.add(item)

    def remove(self, item: T) -> None:
        self._data.remove(item)

    def after(self, item: T) -> Iterator[T]:
        """Items following item, nearest first."""
        i = self._data.index(item)
        for j in range(i + 1, len(self._data)):
            yield self._data[j]

    def before(self, item: T) -> Iterator[T]:
        """Items preceding item, nearest first."""
        i = self._data.index(item)
        for j in range(i - 1, -1, -1):
            yield self._data[j]

    def __iter__(self) -> Iterator[T]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, item: object) -> bool:
        return item in self._data
