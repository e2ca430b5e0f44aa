"""
Directed flow constraints.

Links are made to point down (or right) by a separation constraint per link.
Links inside a strongly connected component are left alone, since a cycle
cannot point one way all the way round.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence, TypeVar, Union
import logging

from .config import Axis
from .constraints import SeparationConstraint
from .linklengths import LinkAccessor

logger = logging.getLogger(__name__)

T = TypeVar("T")


def strongly_connected_components(
    num_vertices: int,
    edges: Sequence[T],
    la: LinkAccessor[T] = LinkAccessor(),
) -> list[list[int]]:
    """
    Tarjan's algorithm for strongly connected components.

    The depth-first search runs on an explicit stack so deep graphs do not
    hit the recursion limit.

    Args:
        num_vertices: Number of vertices
        edges: List of directed edges
        la: Link accessor

    Returns:
        Components in reverse topological order, each a list of vertex indices
    """
    out: list[list[int]] = [[] for _ in range(num_vertices)]
    for e in edges:
        out[la.get_source_index(e)].append(la.get_target_index(e))

    index: list[Optional[int]] = [None] * num_vertices
    lowlink = [0] * num_vertices
    on_stack = [False] * num_vertices
    stack: list[int] = []
    components: list[list[int]] = []
    counter = 0

    for root in range(num_vertices):
        if index[root] is not None:
            continue
        # (vertex, position in its successor list)
        work = [(root, 0)]
        while work:
            v, pi = work.pop()
            if pi == 0:
                index[v] = lowlink[v] = counter
                counter += 1
                stack.append(v)
                on_stack[v] = True
            recurse = False
            succ = out[v]
            while pi < len(succ):
                w = succ[pi]
                pi += 1
                if index[w] is None:
                    work.append((v, pi))
                    work.append((w, 0))
                    recurse = True
                    break
                if on_stack[w]:
                    lowlink[v] = min(lowlink[v], index[w])
            if recurse:
                continue

            if lowlink[v] == index[v]:
                component = []
                while True:
                    w = stack.pop()
                    on_stack[w] = False
                    component.append(w)
                    if w == v:
                        break
                components.append(component)
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[v])

    return components


def generate_directed_edge_constraints(
    n: int,
    links: Sequence[T],
    axis: Axis,
    min_separation: Union[float, Callable[[T], float]] = 0.0,
    la: LinkAccessor[T] = LinkAccessor(),
) -> list[SeparationConstraint]:
    """
    Separation constraints pointing every link along axis.

    Args:
        n: Number of nodes
        links: Directed links
        axis: 'x' for left-to-right, 'y' for top-to-bottom
        min_separation: Gap across each link, a number or a function of the link
        la: Link accessor

    Returns:
        One constraint per link whose endpoints lie in different components
    """
    components = strongly_connected_components(n, links, la)
    component_of = [0] * n
    for i, c in enumerate(components):
        for v in c:
            component_of[v] = i

    gap = min_separation if callable(min_separation) else (lambda l: min_separation)
    constraints = []
    for l in links:
        u = la.get_source_index(l)
        v = la.get_target_index(l)
        if component_of[u] != component_of[v]:
            constraints.append(SeparationConstraint(axis, u, v, float(gap(l))))

    logger.debug(
        "%d flow constraints on %s for %d links (%d components)",
        len(constraints), axis, len(links), len(components),
    )
    return constraints
