"""
Geometric primitives for edge routing.

Points, segments and the segment tests used to decide whether two routing
vertices can see each other past rectangular obstacles.
"""

from __future__ import annotations

from typing import Optional
import math


class Point:
    """2D point."""

    def __init__(self, x: float = 0.0, y: float = 0.0):
        self.x = x
        self.y = y

    def distance_to(self, other: Point) -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def __iter__(self):
        yield self.x
        yield self.y

    def __repr__(self) -> str:
        return f"Point({self.x:g}, {self.y:g})"


class LineSegment:
    """Line segment defined by two endpoints."""

    def __init__(self, x1: float, y1: float, x2: float, y2: float):
        self.x1 = x1
        self.y1 = y1
        self.x2 = x2
        self.y2 = y2

    @classmethod
    def between(cls, p: Point, q: Point) -> LineSegment:
        return cls(p.x, p.y, q.x, q.y)


def line_intersection(
    x1: float, y1: float, x2: float, y2: float,
    x3: float, y3: float, x4: float, y4: float
) -> Optional[Point]:
    """
    Intersection point of segments (x1,y1)-(x2,y2) and (x3,y3)-(x4,y4).

    Returns:
        The intersection point, or None for parallel or disjoint segments
    """
    dx12 = x2 - x1
    dx34 = x4 - x3
    dy12 = y2 - y1
    dy34 = y4 - y3
    denominator = dy34 * dx12 - dx34 * dy12
    if denominator == 0:
        return None

    dx31 = x1 - x3
    dy31 = y1 - y3
    a = (dx34 * dy31 - dy34 * dx31) / denominator
    b = (dx12 * dy31 - dy12 * dx31) / denominator
    if 0 <= a <= 1 and 0 <= b <= 1:
        return Point(x1 + a * dx12, y1 + a * dy12)
    return None


def segment_crosses_box(
    segment: LineSegment,
    x: float, X: float, y: float, Y: float,
    eps: float = 1e-9
) -> bool:
    """
    Test whether a segment passes through the open interior of a box.

    Touching or running along the boundary does not count. Uses Liang-Barsky
    clipping against the box shrunk by eps.
    """
    x, X, y, Y = x + eps, X - eps, y + eps, Y - eps
    if x >= X or y >= Y:
        return False

    dx = segment.x2 - segment.x1
    dy = segment.y2 - segment.y1
    t0, t1 = 0.0, 1.0
    for p, q in (
        (-dx, segment.x1 - x),
        (dx, X - segment.x1),
        (-dy, segment.y1 - y),
        (dy, Y - segment.y1),
    ):
        if p == 0:
            if q <= 0:
                return False
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return False
            t0 = max(t0, t)
        else:
            if t < t0:
                return False
            t1 = min(t1, t)
    return t1 - t0 > 0
