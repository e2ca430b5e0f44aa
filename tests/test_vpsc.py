"""Tests for the VPSC separation constraint solver."""

import itertools

import pytest

from colayout.errors import InfeasibleConstraintsError
from colayout.vpsc import (
    Block,
    Blocks,
    Constraint,
    Solver,
    Span,
    Variable,
    remove_overlap_in_one_dimension,
)


def positions(variables):
    return [v.position() for v in variables]


def make_problem(desired, pairs, gap=3):
    vs = [Variable(d) for d in desired]
    cs = [Constraint(vs[l], vs[r], gap) for l, r in pairs]
    return vs, cs


def assert_feasible(cs, tol=1e-6):
    for c in cs:
        gap = c.right.position() - c.left.position()
        if c.equality:
            assert gap == pytest.approx(c.gap, abs=tol)
        else:
            assert gap >= c.gap - tol


class TestVariable:
    """Test Variable."""

    def test_defaults(self):
        """Test variable defaults."""
        v = Variable(5.0)
        assert v.desired_position == 5.0
        assert v.weight == 1.0
        assert v.scale == 1.0

    def test_position_follows_block(self):
        """Test position follows block."""
        v = Variable(3.0, weight=2.0)
        Block(v)
        assert v.position() == pytest.approx(3.0)


class TestConstraint:
    """Test Constraint."""

    def test_create(self):
        """Test constraint creation."""
        a, b = Variable(0.0), Variable(5.0)
        c = Constraint(a, b, 3.0)
        assert c.left is a
        assert c.right is b
        assert c.gap == 3.0
        assert not c.equality
        assert not c.active

    def test_slack(self):
        """Test constraint slack."""
        a, b = Variable(0.0), Variable(5.0)
        Block(a)
        Block(b)
        assert Constraint(a, b, 3.0).slack() == pytest.approx(2.0)
        assert Constraint(a, b, 7.0).slack() == pytest.approx(-2.0)


class TestSolver:
    """Known problems with a unique optimum."""

    @pytest.mark.parametrize("desired,pairs,expected", [
        (
            [2, 9, 9, 9, 2],
            [(0, 4), (0, 1), (1, 2), (2, 4), (3, 4)],
            [1.4, 4.4, 7.4, 7.4, 10.4],
        ),
        (
            [4, 6, 9, 2, 5],
            [(0, 2), (0, 3), (1, 4), (2, 4), (2, 3), (3, 4)],
            [0.5, 6, 3.5, 6.5, 9.5],
        ),
        (
            [5, 6, 7, 4, 3],
            [(0, 4), (1, 2), (2, 3), (2, 4), (3, 4)],
            [5, 0.5, 3.5, 6.5, 9.5],
        ),
        (
            [7, 1, 6, 0, 2],
            [(0, 3), (0, 1), (1, 4), (2, 4), (2, 3), (3, 4)],
            [0.8, 3.8, 0.8, 3.8, 6.8],
        ),
        (
            [7, 0, 3, 1, 4],
            [(0, 3), (0, 2), (1, 4), (1, 4), (2, 3), (3, 4)],
            [-0.75, 0, 2.25, 5.25, 8.25],
        ),
        (
            [4, 2, 3, 1, 8],
            [(0, 4), (0, 2), (1, 3), (2, 3), (2, 4), (3, 4)],
            [-0.5, 2, 2.5, 5.5, 8.5],
        ),
        (
            [3, 4, 0, 5, 6],
            [(0, 1), (0, 2), (1, 2), (1, 4), (2, 3), (2, 3), (3, 4), (3, 4)],
            [-2.4, 0.6, 3.6, 6.6, 9.6],
        ),
    ])
    def test_known_solutions(self, desired, pairs, expected):
        """Test known solutions."""
        vs, cs = make_problem(desired, pairs)
        Solver(vs, cs).solve()
        assert positions(vs) == pytest.approx(expected, abs=1e-3)
        assert_feasible(cs)

    def test_non_trivial_split(self):
        """Test case: non-trivial split."""
        vs, cs = make_problem(
            [0, 9, 1, 9, 5, 1, 2, 1, 6, 3],
            [(0, 3), (1, 8), (1, 6), (2, 6), (3, 5), (3, 6), (3, 7), (4, 8),
             (4, 7), (5, 8), (5, 7), (5, 8), (6, 9), (7, 8), (7, 9), (8, 9)],
        )
        Solver(vs, cs).solve()
        expected = [-3.714, 4.0, 1.0, -0.714, 2.286, 2.286, 7.0, 5.286, 8.286, 11.286]
        assert positions(vs) == pytest.approx(expected, abs=2e-3)

    def test_simple_scale(self):
        """Test case: simple scale."""
        vs = [Variable(0, weight=1, scale=2), Variable(0, weight=1, scale=1)]
        Solver(vs, [Constraint(vs[0], vs[1], 2)]).solve()
        assert positions(vs) == pytest.approx([-0.8, 0.4], abs=1e-4)

    def test_simple_scale_three_variables(self):
        """Test case: simple scale with 3 variables."""
        vs = [
            Variable(1, weight=1, scale=3),
            Variable(1, weight=1, scale=2),
            Variable(1, weight=1, scale=4),
        ]
        cs = [Constraint(vs[0], vs[1], 2), Constraint(vs[1], vs[2], 2)]
        Solver(vs, cs).solve()
        assert positions(vs) == pytest.approx([0.2623, 1.3934, 1.1967], abs=1e-3)

    def test_satisfied_constraints_leave_desired_positions(self):
        """Test satisfied constraints leave desired positions."""
        vs, cs = make_problem([0, 10, 20], [(0, 1), (1, 2)])
        Solver(vs, cs).solve()
        assert positions(vs) == pytest.approx([0, 10, 20])

    def test_weights_decide_who_moves(self):
        """Test weights decide who moves."""
        heavy = Variable(0, weight=1000)
        light = Variable(0)
        Solver([heavy, light], [Constraint(heavy, light, 10)]).solve()
        assert heavy.position() == pytest.approx(0, abs=0.02)
        assert light.position() == pytest.approx(10, abs=0.02)

    def test_set_desired_positions_and_resolve(self):
        """Test setting desired positions and resolving."""
        vs, cs = make_problem([0, 5], [(0, 1)])
        solver = Solver(vs, cs)
        solver.solve()
        solver.set_desired_positions([10, 15])
        solver.solve()
        assert vs[0].desired_position == 10
        assert vs[1].desired_position == 15
        assert_feasible(cs)

    def test_equality(self):
        """Test equality constraint."""
        vs = [Variable(0), Variable(10)]
        cs = [Constraint(vs[0], vs[1], 5, equality=True)]
        Solver(vs, cs).solve()
        assert vs[1].position() - vs[0].position() == pytest.approx(5.0, abs=1e-6)
        assert positions(vs) == pytest.approx([2.5, 7.5])

    def test_negative_equality_gap(self):
        """Test equality with negative gap."""
        vs = [Variable(0), Variable(0)]
        cs = [Constraint(vs[0], vs[1], -4, equality=True)]
        Solver(vs, cs).solve()
        assert positions(vs) == pytest.approx([2, -2])

    def test_starting_positions(self):
        """Test starting positions."""
        vs, cs = make_problem([0, 0], [(0, 1)], gap=2)
        solver = Solver(vs, cs)
        solver.set_starting_positions([5, 5])
        solver.solve()
        assert positions(vs) == pytest.approx([-1, 1], abs=1e-4)

    def test_cycle_raises(self):
        """Test cycle raises."""
        vs, cs = make_problem([0, 5, 10], [(0, 1), (1, 2), (2, 0)])
        with pytest.raises(InfeasibleConstraintsError) as info:
            Solver(vs, cs).solve()
        assert info.value.constraint in cs

    def test_contradictory_equalities_raise(self):
        """Test contradictory equalities raise."""
        a, b = Variable(0), Variable(0)
        cs = [Constraint(a, b, 5, equality=True), Constraint(b, a, 5, equality=True)]
        with pytest.raises(InfeasibleConstraintsError):
            Solver([a, b], cs).solve()

    def test_consistent_redundant_equalities(self):
        """Test consistent redundant equalities."""
        a, b, c = Variable(0), Variable(1), Variable(2)
        cs = [
            Constraint(a, b, 5, equality=True),
            Constraint(b, c, 5, equality=True),
            Constraint(a, c, 10, equality=True),
        ]
        Solver([a, b, c], cs).solve()
        assert_feasible(cs)

    def test_long_chain_is_not_recursive(self):
        """Test long chain is not recursive."""
        n = 1200
        vs = [Variable(0) for _ in range(n)]
        cs = [Constraint(vs[i], vs[i + 1], 1) for i in range(n - 1)]
        Solver(vs, cs).solve()
        assert vs[-1].position() - vs[0].position() == pytest.approx(n - 1)
        assert sum(positions(vs)) == pytest.approx(0, abs=1e-6)

    def test_matches_brute_force_optimum(self):
        """Compare with the best of all active sets for a small problem."""
        desired = [3, 1, 2, 0]
        pairs = [(0, 1), (1, 2), (0, 3), (2, 3)]
        vs, cs = make_problem(desired, pairs, gap=2)
        Solver(vs, cs).solve()
        cost = sum((p - d) ** 2 for p, d in zip(positions(vs), desired))

        # the optimum of this problem lies on the half-unit grid
        best = float('inf')
        grid = [x / 2 for x in range(-6, 13)]
        for p in itertools.product(grid, repeat=4):
            if all(p[r] - p[l] >= 2 for l, r in pairs):
                best = min(best, sum((a - d) ** 2 for a, d in zip(p, desired)))
        assert cost <= best + 1e-6


class TestBlocks:
    """Test block bookkeeping."""

    def test_one_block_per_variable(self):
        """Test one block per variable."""
        blocks = Blocks([Variable(i) for i in range(3)])
        assert len(blocks) == 3

    def test_cost_at_desired_positions(self):
        """Test cost at desired positions."""
        assert Blocks([Variable(0), Variable(10)]).cost() == 0

    def test_merge(self):
        """Test merge."""
        a, b = Variable(0), Variable(10)
        blocks = Blocks([a, b])
        c = Constraint(a, b, 5)
        blocks.merge(c)
        assert len(blocks) == 1
        assert c.active
        assert a.block is b.block
        assert b.position() - a.position() == pytest.approx(5)

    def test_directed_path(self):
        """Test directed path."""
        a, b, c = Variable(0), Variable(0), Variable(0)
        blocks = Blocks([a, b, c])
        c1 = Constraint(a, b, 1)
        c2 = Constraint(b, c, 1)
        Solver([a, b, c], [c1, c2])
        blocks.merge(c1)
        blocks.merge(c2)
        block = a.block
        assert block.is_active_directed_path_between(a, c)
        assert not block.is_active_directed_path_between(c, a)
        assert block.is_active_directed_path_between(a, a)


class TestRemoveOverlapInOneDimension:
    """Test remove_overlap_in_one_dimension."""

    def test_spans_do_not_overlap(self):
        """Test spans do not overlap."""
        spans = [Span(4, 5), Span(4, 6), Span(4, 7)]
        result = remove_overlap_in_one_dimension(spans)
        centres = result.new_centers
        for i in range(len(spans) - 1):
            assert centres[i + 1] - centres[i] >= (spans[i].size + spans[i + 1].size) / 2 - 1e-6
        assert centres == pytest.approx([2, 6, 10])

    def test_bounds(self):
        """Test bounds."""
        spans = [Span(2, 0.5), Span(2, 1)]
        result = remove_overlap_in_one_dimension(spans, lower_bound=0, upper_bound=10)
        assert result.new_centers[0] - 1 >= result.lower_bound - 1e-6
        assert result.new_centers[-1] + 1 <= result.upper_bound + 1e-6
        assert result.new_centers[1] - result.new_centers[0] >= 2 - 1e-6
        assert result.lower_bound == pytest.approx(0, abs=0.01)

    def test_unbounded_result_reports_extent(self):
        """Test unbounded result reports extent."""
        spans = [Span(4, 5), Span(4, 6)]
        result = remove_overlap_in_one_dimension(spans)
        assert result.lower_bound == pytest.approx(result.new_centers[0] - 2)
        assert result.upper_bound == pytest.approx(result.new_centers[1] + 2)

    def test_empty(self):
        """Test empty input."""
        result = remove_overlap_in_one_dimension([])
        assert result.new_centers == []
