"""
Rectangles and non-overlap constraint generation.

Overlap constraints are generated one axis at a time by sweeping across the
other axis: rectangles that are open at the same time and close to each
other along the scanline become neighbours, and each neighbouring pair gets
a separation constraint when the first of them closes.
"""

from __future__ import annotations

from typing import Any, Callable, NamedTuple, Optional, Sequence
import math

from .geom import Point, line_intersection
from .scanline import Scanline
from .vpsc import Constraint, Solver, Variable


MIN_SEPARATION = 1e-6


class Rectangle:
    """Axis-aligned rectangle with x..X horizontally and y..Y vertically."""

    def __init__(self, x: float, X: float, y: float, Y: float):
        self.x = x
        self.X = X
        self.y = y
        self.Y = Y

    @staticmethod
    def empty() -> Rectangle:
        return Rectangle(math.inf, -math.inf, math.inf, -math.inf)

    def is_empty(self) -> bool:
        return self.x > self.X or self.y > self.Y

    def cx(self) -> float:
        return (self.x + self.X) / 2.0

    def cy(self) -> float:
        return (self.y + self.Y) / 2.0

    def width(self) -> float:
        return self.X - self.x

    def height(self) -> float:
        return self.Y - self.y

    def overlap_x(self, r: Rectangle) -> float:
        """Length of the overlap with r along x (0 if none)."""
        ux = self.cx()
        vx = r.cx()
        if ux <= vx and r.x < self.X:
            return self.X - r.x
        if vx <= ux and self.x < r.X:
            return r.X - self.x
        return 0.0

    def overlap_y(self, r: Rectangle) -> float:
        """Length of the overlap with r along y (0 if none)."""
        uy = self.cy()
        vy = r.cy()
        if uy <= vy and r.y < self.Y:
            return self.Y - r.y
        if vy <= uy and self.y < r.Y:
            return r.Y - self.y
        return 0.0

    def overlaps(self, r: Rectangle, tolerance: float = 0.0) -> bool:
        """True if the interiors intersect by more than tolerance on both axes."""
        return self.overlap_x(r) > tolerance and self.overlap_y(r) > tolerance

    def set_x_centre(self, cx: float) -> None:
        dx = cx - self.cx()
        self.x += dx
        self.X += dx

    def set_y_centre(self, cy: float) -> None:
        dy = cy - self.cy()
        self.y += dy
        self.Y += dy

    def union(self, r: Rectangle) -> Rectangle:
        return Rectangle(min(self.x, r.x), max(self.X, r.X), min(self.y, r.y), max(self.Y, r.Y))

    def inflate(self, pad: float) -> Rectangle:
        """A copy grown by pad on every side (shrunk for negative pad)."""
        return Rectangle(self.x - pad, self.X + pad, self.y - pad, self.Y + pad)

    def contains_point(self, p: Point) -> bool:
        return self.x <= p.x <= self.X and self.y <= p.y <= self.Y

    def line_intersections(self, x1: float, y1: float, x2: float, y2: float) -> list[Point]:
        """Points where the segment (x1,y1)-(x2,y2) crosses the sides."""
        sides = (
            (self.x, self.y, self.X, self.y),
            (self.X, self.y, self.X, self.Y),
            (self.X, self.Y, self.x, self.Y),
            (self.x, self.Y, self.x, self.y),
        )
        intersections = []
        for side in sides:
            p = line_intersection(x1, y1, x2, y2, *side)
            if p is not None:
                intersections.append(p)
        return intersections

    def ray_intersection(self, x2: float, y2: float) -> Optional[Point]:
        """Where the ray from the centre towards (x2, y2) leaves the rectangle."""
        ints = self.line_intersections(self.cx(), self.cy(), x2, y2)
        return ints[0] if ints else None

    def vertices(self) -> list[Point]:
        return [
            Point(self.x, self.y),
            Point(self.X, self.y),
            Point(self.X, self.Y),
            Point(self.x, self.Y),
        ]

    def __repr__(self) -> str:
        return f"Rectangle(x={self.x:g}, X={self.X:g}, y={self.y:g}, Y={self.Y:g})"


class EdgeEnds(NamedTuple):
    source_intersection: Point
    target_intersection: Point
    arrow_start: Point


def make_edge_between(source: Rectangle, target: Rectangle, ah: float) -> EdgeEnds:
    """
    Straight edge between the boundaries of two rectangles.

    Args:
        source: Source rectangle
        target: Target rectangle
        ah: Arrow head size; arrow_start is this far back from the target boundary

    Returns:
        The two boundary points and where the arrow head starts
    """
    si = source.ray_intersection(target.cx(), target.cy()) or Point(source.cx(), source.cy())
    ti = target.ray_intersection(source.cx(), source.cy()) or Point(target.cx(), target.cy())
    dx = ti.x - si.x
    dy = ti.y - si.y
    l = math.hypot(dx, dy)
    if l == 0:
        return EdgeEnds(si, ti, Point(ti.x, ti.y))
    al = l - ah
    return EdgeEnds(si, ti, Point(si.x + al * dx / l, si.y + al * dy / l))


def make_edge_to(s: Point, target: Rectangle, ah: float) -> Point:
    """Point ah short of where the line from s to the target's centre meets its boundary."""
    ti = target.ray_intersection(s.x, s.y) or Point(target.cx(), target.cy())
    dx = ti.x - s.x
    dy = ti.y - s.y
    l = math.hypot(dx, dy)
    if l == 0:
        return ti
    return Point(ti.x - ah * dx / l, ti.y - ah * dy / l)


class _SweepNode:
    __slots__ = ('v', 'r', 'pos', 'order', 'prev', 'next')

    def __init__(self, v: Variable, r: Rectangle, pos: float, order: int):
        self.v = v
        self.r = r
        self.pos = pos
        self.order = order
        self.prev: Scanline[_SweepNode] = Scanline()
        self.next: Scanline[_SweepNode] = Scanline()


def _link(u: _SweepNode, v: _SweepNode) -> None:
    """Record u before v on the scanline."""
    if u not in v.prev:
        v.prev.insert(u)
        u.next.insert(v)


class _Axis:
    """Geometry of one constraint axis; the sweep runs along the other one."""

    def __init__(
        self,
        name: str,
        get_centre: Callable[[Rectangle], float],
        get_open: Callable[[Rectangle], float],
        get_close: Callable[[Rectangle], float],
        get_size: Callable[[Rectangle], float],
        make_rect: Callable[[float, float, float, float], Rectangle],
    ):
        self.name = name
        self.get_centre = get_centre
        self.get_open = get_open
        self.get_close = get_close
        self.get_size = get_size
        self.make_rect = make_rect

    def find_neighbours(self, v: _SweepNode, scanline: Scanline[_SweepNode]) -> None:
        if self.name == 'x':
            for u in scanline.after(v):
                overlap = u.r.overlap_x(v.r)
                if overlap <= 0 or overlap <= u.r.overlap_y(v.r):
                    _link(v, u)
                if overlap <= 0:
                    break
            for u in scanline.before(v):
                overlap = u.r.overlap_x(v.r)
                if overlap <= 0 or overlap <= u.r.overlap_y(v.r):
                    _link(u, v)
                if overlap <= 0:
                    break
        else:
            u = next(scanline.after(v), None)
            if u is not None and u.r.overlap_x(v.r) > 0:
                _link(v, u)
            u = next(scanline.before(v), None)
            if u is not None and u.r.overlap_x(v.r) > 0:
                _link(u, v)


X_AXIS = _Axis(
    'x',
    get_centre=lambda r: r.cx(),
    get_open=lambda r: r.y,
    get_close=lambda r: r.Y,
    get_size=lambda r: r.width(),
    make_rect=lambda open, close, centre, size: Rectangle(
        centre - size / 2, centre + size / 2, open, close
    ),
)

Y_AXIS = _Axis(
    'y',
    get_centre=lambda r: r.cy(),
    get_open=lambda r: r.x,
    get_close=lambda r: r.X,
    get_size=lambda r: r.height(),
    make_rect=lambda open, close, centre, size: Rectangle(
        open, close, centre - size / 2, centre + size / 2
    ),
)

AXES = {'x': X_AXIS, 'y': Y_AXIS}


def _generate_constraints(
    rs: Sequence[Rectangle],
    vs: Sequence[Variable],
    axis: _Axis,
    min_sep: float,
) -> list[Constraint]:
    n = len(rs)
    if len(vs) < n:
        raise ValueError(f"Need a variable per rectangle, got {len(vs)} for {n}")

    events: list[tuple[float, int, int, _SweepNode]] = []
    for i, r in enumerate(rs):
        node = _SweepNode(vs[i], r, axis.get_centre(r), i)
        events.append((axis.get_open(r), 0, i, node))
        events.append((axis.get_close(r), 1, i, node))
    # opens before closes at the same position, then input order
    events.sort(key=lambda e: e[:3])

    cs: list[Constraint] = []

    def make_constraint(l: _SweepNode, r: _SweepNode) -> None:
        sep = (axis.get_size(l.r) + axis.get_size(r.r)) / 2 + min_sep
        cs.append(Constraint(l.v, r.v, sep))

    scanline: Scanline[_SweepNode] = Scanline()
    for _, is_close, _, v in events:
        if not is_close:
            scanline.insert(v)
            axis.find_neighbours(v, scanline)
        else:
            scanline.remove(v)
            for u in v.prev:
                make_constraint(u, v)
                u.next.remove(v)
            for u in v.next:
                make_constraint(v, u)
                u.prev.remove(v)
    return cs


def generate_x_constraints(rs: Sequence[Rectangle], vs: Sequence[Variable]) -> list[Constraint]:
    """Separation constraints keeping the rectangles apart horizontally."""
    return _generate_constraints(rs, vs, X_AXIS, MIN_SEPARATION)


def generate_y_constraints(rs: Sequence[Rectangle], vs: Sequence[Variable]) -> list[Constraint]:
    """Separation constraints keeping the rectangles apart vertically."""
    return _generate_constraints(rs, vs, Y_AXIS, MIN_SEPARATION)


def compute_group_bounds(g: Any) -> Rectangle:
    """
    Set and return the bounds of a group from its members, inflated by its padding.

    Leaves must have bounds; child groups are computed recursively.
    """
    bounds = Rectangle.empty()
    for leaf in g.leaves:
        bounds = leaf.bounds.union(bounds)
    for child in g.groups:
        bounds = compute_group_bounds(child).union(bounds)
    g.bounds = bounds.inflate(g.padding or 0.0)
    return g.bounds


def generate_group_constraints(
    root: Any,
    axis: str,
    min_sep: float = MIN_SEPARATION,
    is_contained: bool = False,
) -> list[Constraint]:
    """
    Non-overlap and containment constraints for a group hierarchy.

    Each group is a rectangle among its siblings. Inside a contained group
    its boundary variables (min_var, max_var) appear as thin rectangles of
    width padding at either side, so the sweep keeps members between them.
    Constraints against a child group are rewritten so that those on its
    left end at min_var and those on its right start at max_var.

    Args:
        root: Group with leaves (having bounds and variable) and groups
        axis: 'x' or 'y'
        min_sep: Extra separation added to every gap
        is_contained: Whether root has boundary variables of its own

    Returns:
        Constraints for root and all of its descendants
    """
    f = AXES[axis]
    padding = root.padding or 0.0
    cs: list[Constraint] = []
    for g in root.groups:
        cs.extend(generate_group_constraints(g, axis, min_sep, True))

    rs: list[Rectangle] = []
    vs: list[Variable] = []
    if is_contained:
        b = root.bounds
        c = f.get_centre(b)
        s = f.get_size(b) / 2
        open_, close = f.get_open(b), f.get_close(b)
        lo = c - s + padding / 2
        hi = c + s - padding / 2
        root.min_var.desired_position = lo
        rs.append(f.make_rect(open_, close, lo, padding))
        vs.append(root.min_var)
        root.max_var.desired_position = hi
        rs.append(f.make_rect(open_, close, hi, padding))
        vs.append(root.max_var)
    for leaf in root.leaves:
        rs.append(leaf.bounds)
        vs.append(leaf.variable)
    for g in root.groups:
        b = g.bounds
        rs.append(f.make_rect(f.get_open(b), f.get_close(b), f.get_centre(b), f.get_size(b)))
        vs.append(g.min_var)

    local = _generate_constraints(rs, vs, f, min_sep)
    for g in root.groups:
        adjustment = ((g.padding or 0.0) - f.get_size(g.bounds)) / 2
        for con in local:
            if con.right is g.min_var:
                con.gap += adjustment
            elif con.left is g.min_var:
                con.left = g.max_var
                con.gap += adjustment
    cs.extend(local)
    return cs


def remove_overlaps(rs: Sequence[Rectangle]) -> None:
    """
    Move rectangles (in place) so that none overlap, disturbing them as little as possible.

    Solves in x first, then in y against the updated x positions.
    """
    vs = [Variable(r.cx()) for r in rs]
    Solver(vs, generate_x_constraints(rs, vs)).solve()
    for r, v in zip(rs, vs):
        r.set_x_centre(v.position())

    vs = [Variable(r.cy()) for r in rs]
    Solver(vs, generate_y_constraints(rs, vs)).solve()
    for r, v in zip(rs, vs):
        r.set_y_centre(v.position())
