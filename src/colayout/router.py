"""
Obstacle-avoiding edge routes over a visibility graph.

Vertices sit at the corners of every obstacle grown by a margin. Two
vertices are joined when the straight segment between them passes through
no obstacle's interior. A route adds the edge's two endpoints to a copy of
that graph and takes the shortest path between them.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence
import logging

from .geom import LineSegment, Point, segment_crosses_box
from .rectangle import Rectangle, make_edge_between, make_edge_to
from .shortestpaths import Calculator

logger = logging.getLogger(__name__)


class VisibilityVertex(NamedTuple):
    id: int
    owner: int
    p: Point


class VisibilityEdge(NamedTuple):
    source: int
    target: int
    length: float


class VisibilityGraph:
    """
    Visibility graph over rectangular obstacles.

    Attributes:
        obstacles: The rectangles to route around
        margin: Clearance between routes and obstacles
        V: Vertices; owner is the index of the obstacle a corner belongs to
        E: Edges between mutually visible vertices
    """

    def __init__(
        self,
        obstacles: Sequence[Rectangle],
        margin: float = 0.0,
        V: Optional[list[VisibilityVertex]] = None,
        E: Optional[list[VisibilityEdge]] = None,
    ):
        self.obstacles = list(obstacles)
        self.margin = margin
        if V is not None and E is not None:
            self.V = list(V)
            self.E = list(E)
            return

        self.V = []
        self.E = []
        for i, r in enumerate(self.obstacles):
            for p in r.inflate(margin).vertices():
                self.V.append(VisibilityVertex(len(self.V), i, p))
        for a in range(len(self.V)):
            for b in range(a + 1, len(self.V)):
                self._add_edge_if_visible(self.V[a], self.V[b])
        logger.debug(
            "Visibility graph: %d obstacles, %d vertices, %d edges",
            len(self.obstacles), len(self.V), len(self.E),
        )

    def copy(self) -> VisibilityGraph:
        return VisibilityGraph(self.obstacles, self.margin, self.V, self.E)

    def is_visible(self, p: Point, q: Point, ignore: Sequence[int] = ()) -> bool:
        """True if the segment pq crosses no obstacle other than those in ignore."""
        segment = LineSegment.between(p, q)
        for i, r in enumerate(self.obstacles):
            if i in ignore:
                continue
            if segment_crosses_box(segment, r.x, r.X, r.y, r.Y):
                return False
        return True

    def _add_edge_if_visible(self, u: VisibilityVertex, v: VisibilityVertex, ignore: Sequence[int] = ()) -> None:
        if self.is_visible(u.p, v.p, ignore):
            self.E.append(VisibilityEdge(u.id, v.id, u.p.distance_to(v.p)))

    def add_point(self, p: Point, owner: int) -> VisibilityVertex:
        """
        Add a free point inside obstacle owner, visible past its own obstacle.
        """
        vertex = VisibilityVertex(len(self.V), owner, p)
        self.V.append(vertex)
        for u in self.V[:-1]:
            self._add_edge_if_visible(vertex, u, ignore=(owner,))
        return vertex

    def shortest_path(self, start: VisibilityVertex, end: VisibilityVertex) -> list[Point]:
        """Points on the shortest path from start to end, or [] if there is none."""
        calc = Calculator(
            len(self.V),
            self.E,
            lambda e: e.source,
            lambda e: e.target,
            lambda e: e.length,
        )
        return [self.V[i].p for i in calc.path_from_node_to_node(start.id, end.id)]


def route(
    vg: VisibilityGraph,
    source_index: int,
    target_index: int,
    source_point: Point,
    target_point: Point,
    arrowhead_size: float = 0.0,
) -> list[Point]:
    """
    Route an edge between two obstacles.

    Args:
        vg: Prepared visibility graph (left unchanged)
        source_index: Obstacle index of the source node
        target_index: Obstacle index of the target node
        source_point: Where the edge starts, normally the source centre
        target_point: Where the edge is aimed, normally the target centre
        arrowhead_size: Gap left before the target boundary for an arrow head

    Returns:
        Polyline from the source boundary to the arrow head start
    """
    source_box = vg.obstacles[source_index]
    target_box = vg.obstacles[target_index]

    g = vg.copy()
    start = g.add_point(source_point, source_index)
    end = VisibilityVertex(len(g.V), target_index, target_point)
    g.V.append(end)
    for u in g.V[:-1]:
        ignore = (target_index, source_index) if u is start else (target_index,)
        g._add_edge_if_visible(end, u, ignore=ignore)

    path = g.shortest_path(start, end)
    if len(path) <= 2:
        if not path:
            logger.debug("No route from %d to %d; drawing a straight edge", source_index, target_index)
        ends = make_edge_between(source_box, target_box, arrowhead_size)
        return [ends.source_intersection, ends.arrow_start]

    first = path[1]
    last = path[-2]
    start_point = source_box.ray_intersection(first.x, first.y) or source_point
    return [start_point] + path[1:-1] + [make_edge_to(last, target_box, arrowhead_size)]
