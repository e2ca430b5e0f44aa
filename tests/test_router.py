"""Tests for the visibility graph edge router."""

import pytest

from colayout.geom import LineSegment, Point, segment_crosses_box
from colayout.rectangle import Rectangle
from colayout.router import VisibilityGraph, route


def crosses(p, q, r):
    return segment_crosses_box(LineSegment.between(p, q), r.x, r.X, r.y, r.Y)


def on_boundary(p, r, tol=1e-9):
    inside = r.x - tol <= p.x <= r.X + tol and r.y - tol <= p.y <= r.Y + tol
    edge = min(abs(p.x - r.x), abs(p.x - r.X), abs(p.y - r.y), abs(p.y - r.Y))
    return inside and edge <= tol


class TestVisibilityGraph:
    """Test VisibilityGraph construction."""

    def test_single_obstacle(self):
        """Sides are visible, diagonals pass through the interior."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10)])
        assert len(vg.V) == 4
        assert len(vg.E) == 4
        assert all(e.length == pytest.approx(10) for e in vg.E)

    def test_margin(self):
        """Test obstacle margin."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10)], margin=2)
        xs = sorted({v.p.x for v in vg.V})
        assert xs == [-2, 12]
        assert len(vg.E) == 4

    def test_owners(self):
        """Test corner owners."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10), Rectangle(20, 30, 0, 10)])
        assert [v.owner for v in vg.V] == [0] * 4 + [1] * 4

    def test_blocked_corners(self):
        """Test blocked corners."""
        # the middle box hides the right side of the left box from the right box
        obstacles = [Rectangle(0, 10, 0, 10), Rectangle(20, 30, -50, 60), Rectangle(40, 50, 0, 10)]
        vg = VisibilityGraph(obstacles)
        for e in vg.E:
            owners = {vg.V[e.source].owner, vg.V[e.target].owner}
            assert owners != {0, 2}

    def test_is_visible(self):
        """Test visibility."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10)])
        assert vg.is_visible(Point(-5, 5), Point(-5, 50))
        assert not vg.is_visible(Point(-5, 5), Point(15, 5))
        assert vg.is_visible(Point(-5, 5), Point(15, 5), ignore=(0,))

    def test_copy_is_independent(self):
        """Test copy is independent."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10)])
        g = vg.copy()
        g.add_point(Point(5, 5), 0)
        assert len(vg.V) == 4
        assert len(g.V) == 5

    def test_add_point_sees_own_corners(self):
        """Test added point sees its own corners."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10)])
        v = vg.add_point(Point(5, 5), 0)
        assert sum(1 for e in vg.E if v.id in (e.source, e.target)) == 4


class TestRoute:
    """Test route."""

    def test_straight_when_clear(self):
        """Test straight route when clear."""
        a, b = Rectangle(0, 10, 0, 10), Rectangle(50, 60, 0, 10)
        path = route(VisibilityGraph([a, b]), 0, 1, Point(5, 5), Point(55, 5))
        assert len(path) == 2
        assert (path[0].x, path[0].y) == pytest.approx((10, 5))
        assert (path[1].x, path[1].y) == pytest.approx((50, 5))

    def test_arrowhead_gap(self):
        """Test arrowhead gap."""
        a, b = Rectangle(0, 10, 0, 10), Rectangle(50, 60, 0, 10)
        path = route(VisibilityGraph([a, b]), 0, 1, Point(5, 5), Point(55, 5), arrowhead_size=4)
        assert path[-1].x == pytest.approx(46)

    def test_detour_around_obstacle(self):
        """Test detour around obstacle."""
        a = Rectangle(0, 10, 0, 10)
        b = Rectangle(100, 110, 0, 10)
        c = Rectangle(40, 70, -20, 30)
        vg = VisibilityGraph([a, b, c])
        path = route(vg, 0, 1, Point(5, 5), Point(105, 5))

        assert len(path) > 2
        assert on_boundary(path[0], a)
        assert on_boundary(path[-1], b)
        for p, q in zip(path, path[1:]):
            assert not crosses(p, q, c)
        for p in path[1:-1]:
            assert on_boundary(p, c)

    def test_detour_respects_margin(self):
        """Test detour respects margin."""
        a = Rectangle(0, 10, 0, 10)
        b = Rectangle(100, 110, 0, 10)
        c = Rectangle(40, 70, -20, 30)
        vg = VisibilityGraph([a, b, c], margin=5)
        path = route(vg, 0, 1, Point(5, 5), Point(105, 5))
        grown = c.inflate(4.9)
        for p in path[1:-1]:
            assert not (grown.x < p.x < grown.X and grown.y < p.y < grown.Y)
        for p, q in zip(path, path[1:]):
            assert not crosses(p, q, grown)

    def test_route_leaves_graph_unchanged(self):
        """Test routing leaves graph unchanged."""
        vg = VisibilityGraph([Rectangle(0, 10, 0, 10), Rectangle(50, 60, 0, 10)])
        n, m = len(vg.V), len(vg.E)
        route(vg, 0, 1, Point(5, 5), Point(55, 5))
        assert (len(vg.V), len(vg.E)) == (n, m)
