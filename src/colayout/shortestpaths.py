"""
Shortest path calculation over undirected, weighted graphs.

All-pairs and single-source distances go through scipy.sparse.csgraph.
Point-to-point paths use Dijkstra over the pairing-heap priority queue so the
route itself can be recovered.
"""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar
import logging
import math

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import shortest_path as csgraph_shortest_path

from .pqueue import PairingHeap, PriorityQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Unreachable pairs are placed this many graph diameters apart.
DISCONNECTED_FACTOR = 1.5


class Neighbour:
    """Adjacency entry: a neighbouring node id and the edge length."""

    __slots__ = ('id', 'distance')

    def __init__(self, id: int, distance: float):
        self.id = id
        self.distance = distance


class _SearchNode:
    """Per-node Dijkstra bookkeeping."""

    __slots__ = ('id', 'neighbours', 'd', 'prev', 'q')

    def __init__(self, id: int):
        self.id = id
        self.neighbours: list[Neighbour] = []
        self.d = math.inf
        self.prev: Optional[_SearchNode] = None
        self.q: Optional[PairingHeap[_SearchNode]] = None


class Calculator(Generic[T]):
    """
    Shortest paths between nodes of a graph given as an edge list.

    Edges are treated as undirected. Parallel edges keep their shortest
    length and self loops are ignored.
    """

    def __init__(
        self,
        n: int,
        edges: list[T],
        get_source_index: Callable[[T], int],
        get_target_index: Callable[[T], int],
        get_length: Callable[[T], float],
    ):
        """
        Args:
            n: Number of nodes
            edges: List of edges
            get_source_index: Function to get source node index from edge
            get_target_index: Function to get target node index from edge
            get_length: Function to get edge length
        """
        self.n = n
        self._lengths: dict[tuple[int, int], float] = {}
        for e in edges:
            u = get_source_index(e)
            v = get_target_index(e)
            if u == v:
                continue
            key = (u, v) if u < v else (v, u)
            d = float(get_length(e))
            if key not in self._lengths or d < self._lengths[key]:
                self._lengths[key] = d

        self._graph: Optional[csr_matrix] = None

    def _csgraph(self) -> csr_matrix:
        if self._graph is None:
            rows = [u for u, _ in self._lengths]
            cols = [v for _, v in self._lengths]
            data = list(self._lengths.values())
            self._graph = csr_matrix((data, (rows, cols)), shape=(self.n, self.n))
        return self._graph

    def distance_matrix(self) -> np.ndarray:
        """
        All-pairs shortest path distances.

        Returns:
            n x n array, with inf for pairs in different components
        """
        if self.n == 0:
            return np.zeros((0, 0))
        return csgraph_shortest_path(self._csgraph(), method='D', directed=False)

    def distances_from_node(self, start: int) -> np.ndarray:
        """Shortest distances from start to every node (inf if unreachable)."""
        return csgraph_shortest_path(self._csgraph(), method='D', directed=False, indices=start)

    def path_from_node_to_node(self, start: int, end: int) -> list[int]:
        """
        Shortest path between two nodes.

        Returns:
            Node ids from start to end inclusive, or [] if end is unreachable
        """
        nodes = [_SearchNode(i) for i in range(self.n)]
        for (u, v), d in self._lengths.items():
            nodes[u].neighbours.append(Neighbour(v, d))
            nodes[v].neighbours.append(Neighbour(u, d))

        q: PriorityQueue[_SearchNode] = PriorityQueue(lambda a, b: a.d <= b.d)
        for node in nodes:
            node.d = 0.0 if node.id == start else math.inf
            node.q = q.push(node)

        def set_heap_node(e: _SearchNode, h: PairingHeap[_SearchNode]) -> None:
            e.q = h

        while not q.empty():
            u = q.pop()
            if u.id == end or u.d == math.inf:
                break
            for neighbour in u.neighbours:
                v = nodes[neighbour.id]
                t = u.d + neighbour.distance
                if t < v.d:
                    v.d = t
                    v.prev = u
                    q.reduce_key(v.q, v, set_heap_node)

        target = nodes[end]
        if target.d == math.inf:
            return []
        path = []
        node: Optional[_SearchNode] = target
        while node is not None:
            path.append(node.id)
            node = node.prev
        path.reverse()
        return path


def finite_distances(D: np.ndarray, factor: float = DISCONNECTED_FACTOR) -> np.ndarray:
    """
    Replace unreachable (non-finite) distances with a diameter-based distance.

    Args:
        D: Square distance matrix, possibly containing inf
        factor: Multiple of the graph diameter given to unreachable pairs

    Returns:
        A copy of D with only finite entries
    """
    D = np.array(D, dtype=float)
    finite = np.isfinite(D)
    if finite.all():
        return D
    diameter = float(D[finite].max()) if finite.any() else 0.0
    fallback = factor * max(diameter, 1.0)
    logger.debug("%d unreachable pairs placed at distance %g", int((~finite).sum()) // 2, fallback)
    D[~finite] = fallback
    return D
