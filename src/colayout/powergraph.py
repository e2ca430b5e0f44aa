"""
Power graph construction.

Nodes with shared neighbourhoods are merged into modules so that many edges
can be drawn as a single power edge between modules. Merging is greedy: at
each step the pair of top-level modules whose merge leaves the fewest edges
is merged, provided it removes at least one edge.
"""

from __future__ import annotations

from typing import Any, Generic, Iterator, NamedTuple, Optional, Sequence, TypeVar, Union
import logging

from .graph import Group
from .linklengths import LinkAccessor

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LinkTypeAccessor(LinkAccessor[T]):
    """Link accessor that also reads the link's type."""

    def get_type(self, l: T) -> int:
        t = getattr(l, 'type', None)
        return 0 if t is None else t


class PowerEdge(NamedTuple):
    """Edge between node indices and/or groups of the power graph."""

    source: Union[int, Group]
    target: Union[int, Group]
    type: int


class PowerGraph(NamedTuple):
    groups: list[Group]
    power_edges: list[PowerEdge]


class ModuleSet:
    """Modules keyed by id, iterated in id order."""

    def __init__(self):
        self.table: dict[int, Module] = {}

    def __len__(self) -> int:
        return len(self.table)

    def __contains__(self, module_id: int) -> bool:
        return module_id in self.table

    def __iter__(self) -> Iterator[Module]:
        for k in sorted(self.table):
            yield self.table[k]

    def intersection(self, other: ModuleSet) -> ModuleSet:
        result = ModuleSet()
        for k, m in self.table.items():
            if k in other.table:
                result.table[k] = m
        return result

    def add(self, m: Module) -> None:
        self.table[m.id] = m

    def remove(self, m: Module) -> None:
        self.table.pop(m.id, None)

    def modules(self) -> list[Module]:
        """Modules eligible for merging (not predefined groups)."""
        return [m for m in self if not m.is_predefined()]


class LinkSets:
    """A module's neighbours, split by link type."""

    def __init__(self):
        self.sets: dict[int, ModuleSet] = {}
        self.n = 0

    def count(self) -> int:
        return self.n

    def add(self, linktype: int, m: Module) -> None:
        self.sets.setdefault(linktype, ModuleSet()).add(m)
        self.n += 1

    def remove(self, linktype: int, m: Module) -> None:
        ms = self.sets.get(linktype)
        if ms is None or m.id not in ms:
            return
        ms.remove(m)
        if not len(ms):
            del self.sets[linktype]
        self.n -= 1

    def items(self) -> Iterator[tuple[int, ModuleSet]]:
        for linktype in sorted(self.sets):
            yield linktype, self.sets[linktype]

    def intersection(self, other: LinkSets) -> LinkSets:
        result = LinkSets()
        for linktype, ms in self.sets.items():
            if linktype in other.sets:
                i = ms.intersection(other.sets[linktype])
                if len(i):
                    result.sets[linktype] = i
                    result.n += len(i)
        return result


class Module:
    """A node, a merged pair of modules, or a predefined group."""

    def __init__(
        self,
        id: int,
        outgoing: Optional[LinkSets] = None,
        incoming: Optional[LinkSets] = None,
        children: Optional[ModuleSet] = None,
        definition: Optional[Group] = None,
    ):
        self.id = id
        self.outgoing = outgoing if outgoing is not None else LinkSets()
        self.incoming = incoming if incoming is not None else LinkSets()
        self.children = children if children is not None else ModuleSet()
        self.definition = definition
        self.gid: Optional[int] = None

    def edges(self) -> Iterator[tuple[int, int, int]]:
        """Outgoing edges as (source id, target id, type)."""
        for linktype, ms in self.outgoing.items():
            for target in ms:
                yield self.id, target.id, linktype

    def is_leaf(self) -> bool:
        return not len(self.children)

    def is_island(self) -> bool:
        return self.outgoing.count() == 0 and self.incoming.count() == 0

    def is_predefined(self) -> bool:
        return self.definition is not None


class _Merge(NamedTuple):
    n_edges: int
    id: int
    a: Module
    b: Module


class Configuration(Generic[T]):
    """
    The current modular decomposition of a graph.

    Attributes:
        modules: Every module ever created; node i is modules[i]
        roots: Merge scopes; roots[0] is the top level, predefined groups add one each
        R: Number of edges in the current power graph
    """

    def __init__(
        self,
        n: int,
        edges: Sequence[T],
        link_accessor: LinkTypeAccessor[T],
        root_group: Optional[Group] = None,
    ):
        self.modules: list[Optional[Module]] = [None] * n
        self.roots: list[ModuleSet] = []
        self.link_accessor = link_accessor

        if root_group is not None and root_group.groups:
            self._init_modules_from_group(root_group)
            for i in range(n):
                if self.modules[i] is None:
                    self.modules[i] = Module(i)
                    self.roots[0].add(self.modules[i])
        else:
            top = ModuleSet()
            self.roots.append(top)
            for i in range(n):
                self.modules[i] = Module(i)
                top.add(self.modules[i])

        self.R = len(edges)
        for e in edges:
            s = self.modules[link_accessor.get_source_index(e)]
            t = self.modules[link_accessor.get_target_index(e)]
            linktype = link_accessor.get_type(e)
            s.outgoing.add(linktype, t)
            t.incoming.add(linktype, s)

    def _init_modules_from_group(self, group: Group) -> ModuleSet:
        module_set = ModuleSet()
        self.roots.append(module_set)
        for leaf in group.leaves:
            i = leaf if isinstance(leaf, int) else leaf.index
            module = Module(i)
            self.modules[i] = module
            module_set.add(module)
        for j, child in enumerate(group.groups):
            children = self._init_modules_from_group(child)
            # negative ids keep predefined groups apart from node ids
            module = Module(-1 - j, LinkSets(), LinkSets(), children, child)
            module_set.add(module)
            self.modules.append(module)
        return module_set

    def merge(self, a: Module, b: Module, k: int = 0) -> Module:
        """
        Replace modules a and b in root k with a new module containing both.

        Edges to neighbours shared by a and b (with the same type and
        direction) move to the new module.
        """
        in_int = a.incoming.intersection(b.incoming)
        out_int = a.outgoing.intersection(b.outgoing)
        children = ModuleSet()
        children.add(a)
        children.add(b)
        m = Module(len(self.modules), out_int, in_int, children)
        self.modules.append(m)

        for linktype, ms in out_int.items():
            for n in ms:
                n.incoming.add(linktype, m)
                n.incoming.remove(linktype, a)
                n.incoming.remove(linktype, b)
                a.outgoing.remove(linktype, n)
                b.outgoing.remove(linktype, n)
        for linktype, ms in in_int.items():
            for n in ms:
                n.outgoing.add(linktype, m)
                n.outgoing.remove(linktype, a)
                n.outgoing.remove(linktype, b)
                a.incoming.remove(linktype, n)
                b.incoming.remove(linktype, n)

        self.R -= in_int.count() + out_int.count()
        self.roots[k].remove(a)
        self.roots[k].remove(b)
        self.roots[k].add(m)
        return m

    def _root_merges(self, k: int = 0) -> list[_Merge]:
        rs = self.roots[k].modules()
        merges = []
        for i in range(len(rs) - 1):
            for j in range(i + 1, len(rs)):
                merges.append(_Merge(self._n_edges(rs[i], rs[j]), len(merges), rs[i], rs[j]))
        return merges

    def _n_edges(self, a: Module, b: Module) -> int:
        """Edges remaining if a and b were merged."""
        return (self.R
                - a.incoming.intersection(b.incoming).count()
                - a.outgoing.intersection(b.outgoing).count())

    def greedy_merge(self) -> bool:
        """
        Perform the best merge in the first root where one helps.

        Returns:
            True if a merge was made
        """
        for i, root in enumerate(self.roots):
            if len(root.modules()) < 2:
                continue
            best = min(self._root_merges(i), key=lambda m: (m.n_edges, m.id))
            if best.n_edges >= self.R:
                continue
            self.merge(best.a, best.b, i)
            return True
        return False

    def all_edges(self) -> list[tuple[int, int, int]]:
        es: list[tuple[int, int, int]] = []
        stack = [self.roots[0]]
        while stack:
            ms = stack.pop()
            for m in ms:
                es.extend(m.edges())
                stack.append(m.children)
        return es

    def get_group_hierarchy(self) -> PowerGraph:
        """
        Groups for every non-trivial module, and the power edges between them.

        Group leaves are node indices and child groups are indices into the
        returned groups list. Predefined groups keep their padding, stiffness
        and id.
        """
        groups: list[Group] = []
        _to_groups(self.roots[0], Group(), groups)

        power_edges = []
        for s, t, linktype in self.all_edges():
            a = self.modules[s]
            b = self.modules[t]
            power_edges.append(PowerEdge(
                s if a.gid is None else groups[a.gid],
                t if b.gid is None else groups[b.gid],
                linktype,
            ))
        return PowerGraph(groups, power_edges)


def _to_groups(modules: ModuleSet, group: Group, groups: list[Group]) -> None:
    for m in modules:
        if m.is_leaf():
            group.leaves.append(m.id)
            continue
        g = group
        m.gid = len(groups)
        if not m.is_island() or m.is_predefined():
            g = Group(id=m.gid)
            if m.is_predefined():
                g.padding = m.definition.padding
                g.stiffness = m.definition.stiffness
                g.id = m.definition.id if m.definition.id is not None else m.gid
            group.groups.append(m.gid)
            groups.append(g)
        _to_groups(m.children, g, groups)


def get_groups(
    n: int,
    links: Sequence[T],
    la: LinkTypeAccessor[T] = LinkTypeAccessor(),
    root_group: Optional[Group] = None,
) -> PowerGraph:
    """
    Build the power graph of a graph.

    Args:
        n: Number of nodes
        links: Links, read through la
        la: Accessor for endpoints and link type
        root_group: Optional resolved group hierarchy; each predefined group
            is kept and merged within separately

    Returns:
        The groups and the retargeted power edges
    """
    config = Configuration(n, links, la, root_group)
    merges = 0
    while config.greedy_merge():
        merges += 1
    pg = config.get_group_hierarchy()
    logger.debug(
        "Power graph: %d merges, %d groups, %d -> %d edges",
        merges, len(pg.groups), len(links), len(pg.power_edges),
    )
    return pg
