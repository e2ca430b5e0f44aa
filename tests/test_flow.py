"""Tests for directed flow constraints and user constraint validation."""

import pytest

from colayout.constraints import (
    AlignmentConstraint,
    AlignmentSpecification,
    SeparationConstraint,
    validate_constraints,
)
from colayout.errors import InvalidConstraintError
from colayout.flow import generate_directed_edge_constraints, strongly_connected_components


class SimpleLink:
    """Directed link between node indices."""

    def __init__(self, source, target, sep=10.0):
        self.source = source
        self.target = target
        self.sep = sep


def links(*pairs):
    return [SimpleLink(s, t) for s, t in pairs]


class TestStronglyConnectedComponents:
    """Test Tarjan's algorithm."""

    def test_dag_has_singleton_components(self):
        """Test DAG components are singletons."""
        components = strongly_connected_components(4, links((0, 1), (1, 2), (0, 3)))
        assert sorted(map(sorted, components)) == [[0], [1], [2], [3]]

    def test_cycle_is_one_component(self):
        """Test a cycle forms one component."""
        components = strongly_connected_components(3, links((0, 1), (1, 2), (2, 0)))
        assert len(components) == 1
        assert sorted(components[0]) == [0, 1, 2]

    def test_reverse_topological_order(self):
        """Test components come in reverse topological order."""
        # cycle 0 -> 1 -> 2 -> 0 feeding 3
        components = strongly_connected_components(4, links((0, 1), (1, 2), (2, 0), (2, 3)))
        assert [sorted(c) for c in components] == [[3], [0, 1, 2]]

    def test_two_cycles(self):
        """Test two linked cycles."""
        es = links((0, 1), (1, 0), (2, 3), (3, 2), (1, 2))
        components = sorted(sorted(c) for c in strongly_connected_components(4, es))
        assert components == [[0, 1], [2, 3]]

    def test_isolated_vertices(self):
        """Test isolated vertices."""
        assert len(strongly_connected_components(3, [])) == 3

    def test_deep_chain(self):
        """Test a long chain does not recurse."""
        n = 5000
        es = links(*[(i, i + 1) for i in range(n - 1)])
        assert len(strongly_connected_components(n, es)) == n

    def test_deep_cycle(self):
        """Test a long cycle does not recurse."""
        n = 5000
        es = links(*[(i, (i + 1) % n) for i in range(n)])
        components = strongly_connected_components(n, es)
        assert len(components) == 1
        assert len(components[0]) == n


class TestDirectedEdgeConstraints:
    """Test generate_directed_edge_constraints."""

    def test_one_constraint_per_dag_link(self):
        """Test one constraint per DAG link."""
        cs = generate_directed_edge_constraints(3, links((0, 1), (1, 2)), 'y', 20)
        assert [(c.axis, c.left, c.right, c.gap) for c in cs] == [('y', 0, 1, 20), ('y', 1, 2, 20)]

    def test_cycle_links_are_skipped(self):
        """Test links inside a cycle are skipped."""
        cs = generate_directed_edge_constraints(3, links((0, 1), (1, 2), (2, 0)), 'y', 20)
        assert cs == []

    def test_links_leaving_a_cycle_are_kept(self):
        """Test links leaving a cycle are kept."""
        es = links((0, 1), (1, 2), (2, 0), (2, 3))
        cs = generate_directed_edge_constraints(4, es, 'x', 5)
        assert [(c.left, c.right) for c in cs] == [(2, 3)]
        assert cs[0].axis == 'x'

    def test_separation_function(self):
        """Test separation given as a function."""
        es = [SimpleLink(0, 1, sep=3), SimpleLink(1, 2, sep=7)]
        cs = generate_directed_edge_constraints(3, es, 'y', lambda l: l.sep)
        assert [c.gap for c in cs] == [3, 7]


class TestValidateConstraints:
    """Test user constraint validation."""

    def test_valid(self):
        """Test valid constraints pass."""
        validate_constraints([
            SeparationConstraint('x', 0, 1, 10),
            AlignmentConstraint('y', [AlignmentSpecification(0), AlignmentSpecification(2, 5)]),
        ], 3)

    @pytest.mark.parametrize("c", [
        SeparationConstraint('z', 0, 1),
        SeparationConstraint('x', 0, 3),
        SeparationConstraint('x', -1, 1),
        SeparationConstraint('x', 1, 1),
        AlignmentConstraint('x', []),
        AlignmentConstraint('x', [AlignmentSpecification(7)]),
    ])
    def test_invalid(self, c):
        """Test invalid constraints are rejected."""
        with pytest.raises(InvalidConstraintError):
            validate_constraints([c], 3)

    def test_unknown_type(self):
        """Test unknown constraint type."""
        with pytest.raises(InvalidConstraintError):
            validate_constraints([{'axis': 'x', 'left': 0, 'right': 1}], 3)

    def test_is_a_value_error(self):
        """Test constraint errors are value errors."""
        with pytest.raises(ValueError):
            validate_constraints([SeparationConstraint('x', 0, 9)], 3)
