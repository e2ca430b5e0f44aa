"""
Structure-aware ideal link lengths.

Both heuristics look at the neighbour sets of a link's endpoints and return a
length factor 1 + w * f(a, b) per link, which the layout multiplies by the
configured ideal length. They give hub nodes in dense graphs more room.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Iterable, TypeVar
import math

T = TypeVar("T")


class LinkAccessor(Generic[T]):
    """Reads endpoint indices from a link object."""

    def get_source_index(self, l: T) -> int:
        return l.source

    def get_target_index(self, l: T) -> int:
        return l.target


def _neighbour_sets(links: Iterable[T], la: LinkAccessor[T]) -> dict[int, set[int]]:
    neighbours: dict[int, set[int]] = {}
    for l in links:
        u = la.get_source_index(l)
        v = la.get_target_index(l)
        neighbours.setdefault(u, set()).add(v)
        neighbours.setdefault(v, set()).add(u)
    return neighbours


def _length_factors(
    links: list[T],
    la: LinkAccessor[T],
    w: float,
    f: Callable[[set[int], set[int]], float],
) -> list[float]:
    neighbours = _neighbour_sets(links, la)
    return [
        1.0 + w * f(neighbours[la.get_source_index(l)], neighbours[la.get_target_index(l)])
        for l in links
    ]


def symmetric_diff(a: set[int], b: set[int]) -> float:
    """sqrt(|a union b| - |a intersection b|)"""
    return math.sqrt(len(a | b) - len(a & b))


def jaccard(a: set[int], b: set[int]) -> float:
    """|a intersection b| / |a union b|, or 0 if either side has fewer than two neighbours."""
    if min(len(a), len(b)) < 2:
        return 0.0
    return len(a & b) / len(a | b)


def symmetric_diff_link_lengths(
    links: list[T],
    la: LinkAccessor[T] = LinkAccessor(),
    w: float = 1.0
) -> list[float]:
    """
    Length factors from the symmetric difference of endpoint neighbour sets.

    Args:
        links: List of links
        la: Link accessor
        w: Weight factor

    Returns:
        One factor per link, in link order
    """
    return _length_factors(links, la, w, symmetric_diff)


def jaccard_link_lengths(
    links: list[T],
    la: LinkAccessor[T] = LinkAccessor(),
    w: float = 1.0
) -> list[float]:
    """
    Length factors from the Jaccard similarity of endpoint neighbour sets.

    Args:
        links: List of links
        la: Link accessor
        w: Weight factor

    Returns:
        One factor per link, in link order
    """
    return _length_factors(links, la, w, jaccard)


LINK_LENGTH_SCHEMES: dict[str, Callable[..., list[float]]] = {
    'symmetric_diff': symmetric_diff_link_lengths,
    'jaccard': jaccard_link_lengths,
}


def link_length_factors(kind: str, links: list[Any], la: LinkAccessor = LinkAccessor(), w: float = 1.0) -> list[float]:
    """Dispatch to the named link length scheme."""
    return LINK_LENGTH_SCHEMES[kind](links, la, w)
