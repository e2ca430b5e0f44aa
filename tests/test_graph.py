"""Tests for the graph data model and its validation."""

import pytest

from colayout.errors import InvalidGroupError, InvalidLinkError, InvalidNodeError
from colayout.graph import (
    Group,
    Link,
    Node,
    resolve_groups,
    resolve_links,
    synthesise_nodes,
    validate_nodes,
)


def make_nodes(n):
    return [Node(x=float(i), y=0.0, width=10, height=10) for i in range(n)]


class TestNode:
    """Test Node."""

    def test_defaults(self):
        """Test node defaults."""
        v = Node()
        assert v.x is None and v.y is None
        assert not v.fixed
        assert v.parent is None

    def test_extra_attributes(self):
        """Test extra node attributes are kept."""
        v = Node(label="a", x=1)
        assert v.label == "a"
        assert v.x == 1

    def test_make_bounds(self):
        """Test node bounds."""
        b = Node(x=10, y=20, width=4, height=6).make_bounds()
        assert (b.x, b.X, b.y, b.Y) == (8, 12, 17, 23)

    def test_make_bounds_unsized(self):
        """Test bounds of an unsized node."""
        b = Node(x=1, y=2).make_bounds()
        assert (b.x, b.X, b.y, b.Y) == (1, 1, 2, 2)


class TestSynthesiseNodes:
    """Test node synthesis for links-only graphs."""

    def test_creates_up_to_highest_index(self):
        """Test nodes created up to highest link index."""
        nodes = synthesise_nodes([Link(0, 3), Link(1, 2)])
        assert len(nodes) == 4
        assert all(isinstance(v, Node) for v in nodes)

    def test_empty(self):
        """Test no links gives no nodes."""
        assert synthesise_nodes([]) == []

    def test_bad_endpoint(self):
        """Test bad link endpoint."""
        with pytest.raises(InvalidLinkError):
            synthesise_nodes([Link(0, "a")])


class TestValidateNodes:
    """Test validate_nodes."""

    def test_valid(self):
        """Test valid nodes."""
        validate_nodes(make_nodes(3) + [Node()])

    @pytest.mark.parametrize("kwargs", [
        {'x': float('nan')},
        {'y': float('inf')},
        {'width': -1},
        {'height': 'tall'},
        {'fixed_weight': 0},
    ])
    def test_invalid(self, kwargs):
        """Test invalid node values."""
        with pytest.raises(InvalidNodeError):
            validate_nodes([Node(**kwargs)])

    def test_not_a_node(self):
        """Test non-node objects are rejected."""
        with pytest.raises(InvalidNodeError):
            validate_nodes([{'x': 1}])


class TestResolveLinks:
    """Test resolve_links."""

    def test_indices(self):
        """Test links given by index."""
        nodes = make_nodes(3)
        resolved = resolve_links(nodes, [Link(0, 1), Link(2, 1)])
        assert [(r.index, r.source, r.target) for r in resolved] == [(0, 0, 1), (1, 2, 1)]

    def test_object_references(self):
        """Test links given by node reference."""
        nodes = make_nodes(3)
        l = Link(nodes[2], nodes[0])
        (r,) = resolve_links(nodes, [l])
        assert (r.source, r.target) == (2, 0)
        assert r.link is l
        assert l.source is nodes[2]

    def test_out_of_range(self):
        """Test out-of-range link index."""
        with pytest.raises(InvalidLinkError):
            resolve_links(make_nodes(2), [Link(0, 2)])

    def test_negative_index(self):
        """Test negative link index."""
        with pytest.raises(InvalidLinkError):
            resolve_links(make_nodes(2), [Link(-1, 0)])

    def test_foreign_node(self):
        """Test node not in the layout."""
        with pytest.raises(InvalidLinkError):
            resolve_links(make_nodes(2), [Link(0, Node())])

    @pytest.mark.parametrize("kwargs", [
        {'weight': 0},
        {'weight': 1.5},
        {'length': 0},
        {'length': float('inf')},
    ])
    def test_bad_link_values(self, kwargs):
        """Test invalid link values."""
        with pytest.raises(InvalidLinkError):
            resolve_links(make_nodes(2), [Link(0, 1, **kwargs)])


class TestResolveGroups:
    """Test resolve_groups."""

    def test_indices_become_references(self):
        """Test group indices become references."""
        nodes = make_nodes(4)
        inner = Group(leaves=[2, 3])
        outer = Group(leaves=[1], groups=[0])
        root = resolve_groups(nodes, [inner, outer])

        assert inner.leaves == [nodes[2], nodes[3]]
        assert outer.groups == [inner]
        assert inner.parent is outer
        assert nodes[2].parent is inner
        assert nodes[1].parent is outer
        assert (inner.index, outer.index) == (0, 1)

        assert root.leaves == [nodes[0]]
        assert root.groups == [outer]

    def test_object_members(self):
        """Test group members given as objects."""
        nodes = make_nodes(3)
        child = Group(leaves=[nodes[0]])
        parent = Group(groups=[child], leaves=[nodes[2]])
        root = resolve_groups(nodes, [child, parent])
        assert child.parent is parent
        assert root.leaves == [nodes[1]]

    def test_no_groups(self):
        """Test no groups."""
        nodes = make_nodes(2)
        root = resolve_groups(nodes, [])
        assert root.leaves == nodes
        assert root.groups == []

    def test_resolving_twice(self):
        """Test resolving the same groups twice."""
        nodes = make_nodes(3)
        groups = [Group(leaves=[0, 1])]
        resolve_groups(nodes, groups)
        root = resolve_groups(nodes, groups)
        assert groups[0].leaves == [nodes[0], nodes[1]]
        assert root.leaves == [nodes[2]]

    def test_unknown_leaf(self):
        """Test unknown leaf."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(leaves=[5])])

    def test_shared_leaf(self):
        """Test leaf shared between groups."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(leaves=[0]), Group(leaves=[0, 1])])

    def test_unknown_child(self):
        """Test unknown child group."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(groups=[3])])

    def test_self_containment(self):
        """Test group containing itself."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(groups=[0])])

    def test_cycle(self):
        """Test containment cycle."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(groups=[1]), Group(groups=[0])])

    def test_two_parents(self):
        """Test group with two parents."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(1), [Group(leaves=[0]), Group(groups=[0]), Group(groups=[0])])

    def test_empty_group(self):
        """Test group without leaves or child groups."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(2), [Group(leaves=[0]), Group()])

    def test_group_of_groups_is_not_empty(self):
        """Test group holding only child groups."""
        root = resolve_groups(make_nodes(1), [Group(leaves=[0]), Group(groups=[0])])
        assert len(root.groups) == 1

    def test_node_indices_assigned(self):
        """Test nodes are numbered by position."""
        nodes = [Node(), Node(), Node()]
        resolve_groups(nodes, [Group(leaves=[nodes[2]])])
        assert [v.index for v in nodes] == [0, 1, 2]

    def test_negative_padding(self):
        """Test negative padding."""
        with pytest.raises(InvalidGroupError):
            resolve_groups(make_nodes(1), [Group(leaves=[0], padding=-1)])

    def test_failure_leaves_inputs_untouched(self):
        """Test failed resolution leaves inputs untouched."""
        nodes = make_nodes(3)
        good = Group(leaves=[0, 1])
        bad = Group(leaves=[1])
        with pytest.raises(InvalidGroupError):
            resolve_groups(nodes, [good, bad])
        assert good.leaves == [0, 1]
        assert good.index is None
        assert all(v.index is None for v in nodes)
        assert all(v.parent is None for v in nodes)
