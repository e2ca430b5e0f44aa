"""
Graph data model: nodes, links and hierarchical groups.

Callers hand the layout plain Node, Link and Group objects whose endpoints
and members may be given either as indices or as object references. The
resolve_* functions validate them once per start() and turn references into
a consistent, index-based picture. Validation completes before anything is
written back, so a failed call leaves the caller's objects untouched.
"""

from __future__ import annotations

from typing import Any, NamedTuple, Optional, Sequence, Union
import math

from .errors import InvalidGroupError, InvalidLinkError, InvalidNodeError
from .rectangle import Rectangle


class Node:
    """
    Layout node.

    Attributes:
        index: Position in the nodes list, assigned by the layout
        x, y: Centre position; None until the layout places the node
        width, height: Size of the node's bounding box
        fixed: Pinned nodes are held at (px, py)
        fixed_weight: Projection weight of a pinned node
        px, py: Pin target, captured from x, y at start if not set
        bounds: Current bounding rectangle
        parent: Owning group, if any
        id: Caller-defined identifier
    """

    def __init__(self, **kwargs):
        self.index: Optional[int] = kwargs.get('index')
        self.x: Optional[float] = kwargs.get('x')
        self.y: Optional[float] = kwargs.get('y')
        self.width: Optional[float] = kwargs.get('width')
        self.height: Optional[float] = kwargs.get('height')
        self.fixed: bool = bool(kwargs.get('fixed', False))
        self.fixed_weight: Optional[float] = kwargs.get('fixed_weight')
        self.px: Optional[float] = kwargs.get('px')
        self.py: Optional[float] = kwargs.get('py')
        self.bounds: Optional[Rectangle] = kwargs.get('bounds')
        self.parent: Optional[Group] = None
        self.id: Any = kwargs.get('id')
        self.variable = None

        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def make_bounds(self) -> Rectangle:
        """Bounding rectangle at the current position (degenerate when unsized)."""
        w2 = (self.width or 0.0) / 2
        h2 = (self.height or 0.0) / 2
        return Rectangle(self.x - w2, self.x + w2, self.y - h2, self.y + h2)

    def __repr__(self) -> str:
        return f"Node(index={self.index}, x={self.x}, y={self.y})"


class Group:
    """
    Hierarchical group of nodes and child groups.

    Attributes:
        leaves: Member nodes (indices or Node objects)
        groups: Child groups (indices or Group objects)
        padding: Space between the group boundary and its members
        stiffness: Projection weight of the group's boundary variables
        bounds: Bounding rectangle, derived from the members
        parent: Owning group, if any
        index: Position in the groups list
    """

    def __init__(self, **kwargs):
        self.leaves: list[Union[Node, int]] = list(kwargs.get('leaves') or [])
        self.groups: list[Union[Group, int]] = list(kwargs.get('groups') or [])
        self.padding: float = kwargs.get('padding', 1.0)
        self.stiffness: float = kwargs.get('stiffness', 0.01)
        self.bounds: Optional[Rectangle] = kwargs.get('bounds')
        self.parent: Optional[Group] = None
        self.index: Optional[int] = kwargs.get('index')
        self.id: Any = kwargs.get('id')
        self.min_var = None
        self.max_var = None

        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Group(index={self.index}, leaves={len(self.leaves)}, groups={len(self.groups)})"


class Link:
    """
    Link between two nodes.

    Attributes:
        source: Source node (or node index)
        target: Target node (or node index)
        length: Explicit ideal length, overriding the layout's link distance
        weight: How hard to try to keep the ideal length (0 < weight <= 1)
        type: Tag used by the power graph builder
    """

    def __init__(
        self,
        source: Union[Node, int],
        target: Union[Node, int],
        length: Optional[float] = None,
        weight: Optional[float] = None,
        type: Optional[int] = None,
        **kwargs
    ):
        self.source = source
        self.target = target
        self.length = length
        self.weight = weight
        self.type = type

        for key, value in kwargs.items():
            if not hasattr(self, key):
                setattr(self, key, value)

    def __repr__(self) -> str:
        return f"Link({_endpoint_repr(self.source)} -> {_endpoint_repr(self.target)})"


def _endpoint_repr(e: Union[Node, int]) -> str:
    return str(e) if isinstance(e, int) else f"node {e.index}"


class ResolvedLink(NamedTuple):
    """A link with both endpoints turned into node indices."""

    index: int
    source: int
    target: int
    link: Link


def is_group(g: Any) -> bool:
    return isinstance(g, Group)


def _is_index(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _check_number(node_i: int, name: str, value: Any, non_negative: bool = False) -> None:
    if value is None:
        return
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidNodeError(f"Node {node_i}: {name} must be a number, got {value!r}") from None
    if not math.isfinite(v):
        raise InvalidNodeError(f"Node {node_i}: {name} must be finite, got {value!r}")
    if non_negative and v < 0:
        raise InvalidNodeError(f"Node {node_i}: {name} must be non-negative, got {value!r}")


def synthesise_nodes(links: Sequence[Link]) -> list[Node]:
    """
    Create nodes 0..max referenced index for a links-only graph.

    Raises:
        InvalidLinkError: If a link endpoint is neither an index nor a Node
    """
    n = 0
    for l in links:
        for e in (l.source, l.target):
            if _is_index(e):
                n = max(n, e + 1)
            elif not isinstance(e, Node):
                raise InvalidLinkError(f"{l!r}: endpoint must be a node index or Node")
    return [Node() for _ in range(n)]


def validate_nodes(nodes: Sequence[Node]) -> None:
    """
    Check every node's numeric fields.

    Raises:
        InvalidNodeError: For non-finite coordinates or negative sizes
    """
    for i, v in enumerate(nodes):
        if not isinstance(v, Node):
            raise InvalidNodeError(f"Node {i}: expected a Node, got {type(v).__name__}")
        _check_number(i, 'x', v.x)
        _check_number(i, 'y', v.y)
        _check_number(i, 'width', v.width, non_negative=True)
        _check_number(i, 'height', v.height, non_negative=True)
        _check_number(i, 'px', v.px)
        _check_number(i, 'py', v.py)
        if v.fixed_weight is not None and not v.fixed_weight > 0:
            raise InvalidNodeError(f"Node {i}: fixed_weight must be positive, got {v.fixed_weight!r}")


def resolve_links(nodes: Sequence[Node], links: Sequence[Link]) -> list[ResolvedLink]:
    """
    Turn link endpoints into node indices.

    Args:
        nodes: The layout's nodes
        links: Links whose endpoints are indices or members of nodes

    Returns:
        One ResolvedLink per input link, in order

    Raises:
        InvalidLinkError: For out-of-range indices, foreign nodes or bad weights
    """
    positions = {id(v): i for i, v in enumerate(nodes)}
    n = len(nodes)

    def endpoint(l: Link, e: Union[Node, int]) -> int:
        if _is_index(e):
            if not 0 <= e < n:
                raise InvalidLinkError(f"{l!r}: node index {e} out of range for {n} nodes")
            return e
        if id(e) not in positions:
            raise InvalidLinkError(f"{l!r}: endpoint is not in the nodes list")
        return positions[id(e)]

    resolved = []
    for i, l in enumerate(links):
        if l.weight is not None and not 0 < l.weight <= 1:
            raise InvalidLinkError(f"{l!r}: weight must be in (0, 1], got {l.weight!r}")
        if l.length is not None and not (l.length > 0 and math.isfinite(l.length)):
            raise InvalidLinkError(f"{l!r}: length must be a positive number, got {l.length!r}")
        resolved.append(ResolvedLink(i, endpoint(l, l.source), endpoint(l, l.target), l))
    return resolved


def resolve_groups(nodes: Sequence[Node], groups: Sequence[Group]) -> Group:
    """
    Resolve group membership into object references and build the root group.

    Members given as indices are replaced by the corresponding Node or Group,
    parents and indices are assigned, and a root group collects everything
    without a parent.

    Raises:
        InvalidGroupError: For empty groups, unknown or shared members, or cycles
    """
    node_pos = {id(v): i for i, v in enumerate(nodes)}
    group_pos = {id(g): i for i, g in enumerate(groups)}
    leaf_parent: dict[int, int] = {}
    group_parent: dict[int, int] = {}
    leaves: list[list[int]] = []
    children: list[list[int]] = []

    for gi, g in enumerate(groups):
        if not isinstance(g, Group):
            raise InvalidGroupError(f"Group {gi}: expected a Group, got {type(g).__name__}")
        if g.padding is None or g.padding < 0:
            raise InvalidGroupError(f"Group {gi}: padding must be non-negative, got {g.padding!r}")
        ls = []
        for v in g.leaves:
            i = v if _is_index(v) else node_pos.get(id(v))
            if i is None or not 0 <= i < len(nodes):
                raise InvalidGroupError(f"Group {gi}: leaf {v!r} is not a node")
            if i in leaf_parent:
                raise InvalidGroupError(
                    f"Node {i} belongs to both group {leaf_parent[i]} and group {gi}"
                )
            leaf_parent[i] = gi
            ls.append(i)
        cs = []
        for c in g.groups:
            j = c if _is_index(c) else group_pos.get(id(c))
            if j is None or not 0 <= j < len(groups):
                raise InvalidGroupError(f"Group {gi}: child {c!r} is not a group")
            if j == gi or j in group_parent:
                raise InvalidGroupError(f"Group {j} has more than one parent")
            group_parent[j] = gi
            cs.append(j)
        if not ls and not cs:
            raise InvalidGroupError(f"Group {gi} has no leaves and no child groups")
        leaves.append(ls)
        children.append(cs)

    # each group has at most one parent, so a cycle shows up as a walk that never reaches a root
    for start in range(len(groups)):
        seen = set()
        g = start
        while g in group_parent:
            if g in seen:
                raise InvalidGroupError(f"Group {start} is part of a containment cycle")
            seen.add(g)
            g = group_parent[g]

    for i, v in enumerate(nodes):
        v.index = i
        v.parent = None
    for gi, g in enumerate(groups):
        g.index = gi
        g.parent = None
    for gi, g in enumerate(groups):
        g.leaves = [nodes[i] for i in leaves[gi]]
        g.groups = [groups[j] for j in children[gi]]
        for v in g.leaves:
            v.parent = g
        for c in g.groups:
            c.parent = g

    return Group(
        leaves=[v for i, v in enumerate(nodes) if i not in leaf_parent],
        groups=[g for j, g in enumerate(groups) if j not in group_parent],
        padding=0.0,
    )
