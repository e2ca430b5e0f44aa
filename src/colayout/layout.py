"""
Layout controller.

Layout holds the graph (nodes, links, groups, constraints) and a
LayoutConfig, and runs the layout phases:

- unconstrained stress descent
- descent projected onto the user constraints
- descent projected onto all constraints (user, flow, non-overlap, groups)
- grid snap

start() runs the phases synchronously. With keep_running the layout stays
"hot" and an external driver calls tick() (for instance once per frame)
until it reports CONVERGED or STOPPED. Observers receive a notification at
each phase boundary and each tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Union
import logging
import math

import numpy as np

from .config import Axis, FlowSpec, LayoutConfig, LinkLengthScheme, LinkNumericPropertyAccessor
from .constraints import UserConstraint, validate_constraints
from .descent import Descent
from .errors import InvalidConfigError, InvalidDistanceMatrixError, InvalidLinkError, LayoutError, RoutingError
from .flow import generate_directed_edge_constraints
from .geom import Point
from .graph import (
    Group,
    Link,
    Node,
    ResolvedLink,
    resolve_groups,
    resolve_links,
    synthesise_nodes,
    validate_nodes,
)
from .linklengths import link_length_factors
from .packing import apply_packing, separate_graphs
from .powergraph import LinkTypeAccessor, PowerGraph, get_groups
from .projection import Projection
from .rectangle import compute_group_bounds
from .router import VisibilityGraph, route
from .shortestpaths import Calculator, finite_distances

logger = logging.getLogger(__name__)

# weight marking a node pair that only repels
REPEL_ONLY = 2.0
GROUP_IDEAL_DISTANCE = 0.1
RESUME_ALPHA = 0.1


class LayoutStatus(Enum):
    RUNNING = 'running'
    CONVERGED = 'converged'
    STOPPED = 'stopped'


class LayoutPhase(Enum):
    UNCONSTRAINED = 'unconstrained'
    USER_CONSTRAINTS = 'user_constraints'
    ALL_CONSTRAINTS = 'all_constraints'
    GRID_SNAP = 'grid_snap'
    TICK = 'tick'


@dataclass(frozen=True)
class LayoutEvent:
    """
    Progress notification.

    Attributes:
        phase: Phase being run
        alpha: Current cooling value (0 once converged)
        stress: Current stress, if a layout is in progress
        positions: 2 x n array of node centres (a copy)
    """

    phase: LayoutPhase
    alpha: float
    stress: Optional[float]
    positions: np.ndarray


class LayoutObserver:
    """Receives layout notifications synchronously. Override what you need."""

    def on_phase_start(self, event: LayoutEvent) -> None:
        pass

    def on_tick(self, event: LayoutEvent) -> None:
        pass

    def on_converged(self, event: LayoutEvent) -> None:
        pass


class _LayoutLinkAccessor(LinkTypeAccessor[ResolvedLink]):
    def __init__(self, layout: Layout):
        self.layout = layout

    def get_type(self, l: ResolvedLink) -> int:
        return self.layout.get_link_type(l.link)


def _as_node(v: Any) -> Node:
    return Node(**v) if isinstance(v, dict) else v


def _as_link(l: Any) -> Link:
    if isinstance(l, dict):
        return Link(**l)
    if isinstance(l, tuple):
        return Link(*l)
    return l


def _as_group(g: Any) -> Group:
    return Group(**g) if isinstance(g, dict) else g


class Layout:
    """
    Constrained stress layout of a graph.

    Configuration goes through configure() (or the chaining shortcuts such
    as avoid_overlaps() and flow_layout()) and is read back from config.
    Graph data goes in through the set_* methods and is read back from the
    matching properties.
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self._config = config if config is not None else LayoutConfig()
        self._nodes: list[Node] = []
        self._links: list[Link] = []
        self._groups: list[Group] = []
        self._constraints: list[UserConstraint] = []
        self._distance_matrix: Optional[np.ndarray] = None

        self._root_group: Optional[Group] = None
        self._resolved: list[ResolvedLink] = []
        self._link_factors: dict[int, float] = {}
        self._flow_constraints: list[UserConstraint] = []
        self._descent: Optional[Descent] = None
        self._visibility_graph: Optional[VisibilityGraph] = None
        self._observers: list[LayoutObserver] = []

        self._alpha = 0.0
        self._last_stress: Optional[float] = None
        self._running = False
        self._stop_requested = False
        self._status = LayoutStatus.CONVERGED
        self._started = False

    # configuration

    @property
    def config(self) -> LayoutConfig:
        return self._config

    def configure(self, **changes: Any) -> Layout:
        """Replace configuration fields, e.g. configure(avoid_overlaps=True)."""
        self._config = self._config.update(**changes)
        return self

    def size(self, width: float, height: float) -> Layout:
        """Canvas size; its midpoint is where unpositioned nodes start."""
        return self.configure(canvas_size=(width, height))

    def avoid_overlaps(self, v: bool = True) -> Layout:
        return self.configure(avoid_overlaps=v)

    def handle_disconnected(self, v: bool = True) -> Layout:
        return self.configure(handle_disconnected=v)

    def link_distance(self, x: Union[float, LinkNumericPropertyAccessor]) -> Layout:
        return self.configure(link_distance=x if callable(x) else float(x), link_lengths=None)

    def link_type(self, f: Union[int, Callable[[Link], int]]) -> Layout:
        return self.configure(link_type=f)

    def convergence_threshold(self, x: float) -> Layout:
        return self.configure(convergence_threshold=float(x))

    def default_node_size(self, x: float) -> Layout:
        return self.configure(default_node_size=float(x))

    def group_compactness(self, x: float) -> Layout:
        return self.configure(group_compactness=float(x))

    def flow_layout(
        self,
        axis: Axis = 'y',
        min_separation: Union[float, LinkNumericPropertyAccessor] = 0.0,
    ) -> Layout:
        """
        Point links along an axis: 'x' for left-to-right, 'y' for top-to-bottom.

        A separation constraint of min_separation is generated for every link
        not inside a cycle.
        """
        return self.configure(flow=FlowSpec(axis, min_separation))

    def symmetric_diff_link_lengths(self, ideal_length: float, w: float = 1.0) -> Layout:
        """
        Link lengths from the symmetric difference of the endpoints' neighbour
        sets: ideal_length * (1 + w * sqrt(|a union b| - |a intersection b|)).
        Gives hub nodes in dense graphs more room.
        """
        return self.configure(link_lengths=LinkLengthScheme('symmetric_diff', ideal_length, w))

    def jaccard_link_lengths(self, ideal_length: float, w: float = 1.0) -> Layout:
        """
        Link lengths from the Jaccard similarity of the endpoints' neighbour
        sets: ideal_length * (1 + w * |a intersection b| / |a union b|).
        """
        return self.configure(link_lengths=LinkLengthScheme('jaccard', ideal_length, w))

    # graph data

    @property
    def nodes(self) -> list[Node]:
        """
        The nodes. With links but no nodes set, nodes 0..max link index are
        created here.
        """
        if not self._nodes and self._links:
            self._nodes = synthesise_nodes(self._links)
        return self._nodes

    def set_nodes(self, nodes: Sequence[Any]) -> Layout:
        """Set the nodes (Node objects or dicts of Node fields)."""
        self._nodes = [_as_node(v) for v in nodes]
        self._replace_graph()
        return self

    @property
    def links(self) -> list[Link]:
        return self._links

    def set_links(self, links: Sequence[Any]) -> Layout:
        """Set the links (Link objects, dicts, or (source, target) tuples)."""
        self._links = [_as_link(l) for l in links]
        self._replace_graph()
        return self

    @property
    def groups(self) -> list[Group]:
        return self._groups

    def set_groups(self, groups: Sequence[Any]) -> Layout:
        """Set the groups (Group objects or dicts of Group fields)."""
        self._groups = [_as_group(g) for g in groups]
        self._replace_graph()
        return self

    @property
    def constraints(self) -> list[UserConstraint]:
        return self._constraints

    def set_constraints(self, constraints: Sequence[UserConstraint]) -> Layout:
        self._constraints = list(constraints)
        return self

    @property
    def distance_matrix(self) -> Optional[np.ndarray]:
        return self._distance_matrix

    def set_distance_matrix(self, d: Optional[Any]) -> Layout:
        """
        Ideal distances between all pairs of nodes, replacing shortest paths.
        Pass None to go back to shortest paths.
        """
        if d is None:
            self._distance_matrix = None
            return self
        D = np.array(d, dtype=float)
        if D.ndim != 2 or D.shape[0] != D.shape[1]:
            raise InvalidDistanceMatrixError(f"Distance matrix must be square, got shape {D.shape}")
        if not np.isfinite(D).all() or (D < 0).any():
            raise InvalidDistanceMatrixError("Distance matrix entries must be finite and non-negative")
        if not np.allclose(D, D.T):
            raise InvalidDistanceMatrixError("Distance matrix must be symmetric")
        self._distance_matrix = D
        return self

    @property
    def flow_constraints(self) -> list[UserConstraint]:
        """Constraints generated by flow_layout in the last start()."""
        return self._flow_constraints

    # observers

    def add_observer(self, observer: LayoutObserver) -> Layout:
        self._observers.append(observer)
        return self

    def remove_observer(self, observer: LayoutObserver) -> Layout:
        self._observers.remove(observer)
        return self

    def _event(self, phase: LayoutPhase) -> LayoutEvent:
        n = len(self._nodes)
        if self._descent is not None:
            positions = self._descent.x[:, :n].copy()
            stress = self._descent.compute_stress()
        else:
            positions = np.zeros((2, n))
            stress = None
        return LayoutEvent(phase, self._alpha, stress, positions)

    def _notify(self, method: str, phase: LayoutPhase) -> None:
        if not self._observers:
            return
        event = self._event(phase)
        for o in self._observers:
            getattr(o, method)(event)

    # link helpers

    @staticmethod
    def get_source_index(e: Link) -> int:
        return e.source if isinstance(e.source, int) else e.source.index

    @staticmethod
    def get_target_index(e: Link) -> int:
        return e.target if isinstance(e.target, int) else e.target.index

    @staticmethod
    def link_id(e: Link) -> str:
        """String id "source-target" of a link."""
        return f"{Layout.get_source_index(e)}-{Layout.get_target_index(e)}"

    def get_link_length(self, link: Link) -> float:
        """
        Ideal length of a link: its own length if set, otherwise the
        configured distance times any structural factor from the last start().
        """
        if link.length is not None:
            return float(link.length)
        scheme = self._config.link_lengths
        if scheme is not None:
            base = scheme.ideal_length
        elif callable(self._config.link_distance):
            base = float(self._config.link_distance(link))
        else:
            base = float(self._config.link_distance)
        return base * self._link_factors.get(id(link), 1.0)

    def get_link_type(self, link: Link) -> int:
        t = self._config.link_type
        if callable(t):
            return t(link)
        if t is not None:
            return t
        return 0 if link.type is None else link.type

    # running

    def _invalidate(self) -> None:
        self._visibility_graph = None

    def _replace_graph(self) -> None:
        self._started = False
        self._invalidate()

    def _resolve(self) -> tuple[list[Node], list[ResolvedLink], Group]:
        """Validate everything, then resolve groups. Nothing is modified on failure."""
        nodes = self.nodes
        validate_nodes(nodes)
        resolved = resolve_links(nodes, self._links)
        validate_constraints(self._constraints, len(nodes))
        if self._distance_matrix is not None and self._distance_matrix.shape[0] != len(nodes):
            raise InvalidDistanceMatrixError(
                f"Distance matrix is {self._distance_matrix.shape[0]}x{self._distance_matrix.shape[0]}"
                f" but there are {len(nodes)} nodes"
            )
        root = resolve_groups(nodes, self._groups)
        return nodes, resolved, root

    def _compute_link_factors(self, resolved: list[ResolvedLink]) -> None:
        scheme = self._config.link_lengths
        self._link_factors = {}
        if scheme is None or not resolved:
            return
        factors = link_length_factors(scheme.kind, resolved, w=scheme.weight)
        for rl, f in zip(resolved, factors):
            self._link_factors[id(rl.link)] = f

    def _build_matrices(self, n: int, N: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Ideal distances D and goal weights for the descent.

        Returns:
            (D, G for the early phases, G for the all-constraints phase)
        """
        D = np.ones((N, N))
        G = np.zeros((N, N))
        G_all = np.zeros((N, N))

        if self._distance_matrix is not None:
            D[:n, :n] = finite_distances(self._distance_matrix)
            G[:n, :n] = 1.0
            G_all[:n, :n] = 1.0
        else:
            calc = Calculator(
                n,
                self._resolved,
                lambda l: l.source,
                lambda l: l.target,
                lambda l: self.get_link_length(l.link),
            )
            raw = calc.distance_matrix()
            D[:n, :n] = finite_distances(raw)
            G[:n, :n] = np.where(np.isfinite(raw), 1.0, REPEL_ONLY)
            G_all[:n, :n] = REPEL_ONLY
            for rl in self._resolved:
                if rl.source == rl.target:
                    continue
                w = rl.link.weight if rl.link.weight else 1.0
                G_all[rl.source, rl.target] = G_all[rl.target, rl.source] = w
        np.fill_diagonal(D, 0.0)

        for k in range(len(self._groups)):
            i = n + 2 * k
            D[i, i + 1] = D[i + 1, i] = GROUP_IDEAL_DISTANCE
            G[i, i + 1] = G[i + 1, i] = self._config.group_compactness
            G_all[i, i + 1] = G_all[i + 1, i] = self._config.group_compactness
        return D, G, G_all

    def _lock_fixed_nodes(self) -> None:
        self._descent.locks.clear()
        for i, v in enumerate(self._nodes):
            if v.fixed:
                if v.px is None or v.py is None:
                    v.px, v.py = v.x, v.y
                self._descent.locks.add(i, np.array([v.px, v.py]))

    def start(
        self,
        initial_unconstrained_iterations: int = 0,
        initial_user_constraint_iterations: int = 0,
        initial_all_constraints_iterations: int = 0,
        grid_snap_iterations: int = 0,
        keep_running: bool = True,
        center_graph: bool = True,
    ) -> Layout:
        """
        Run the layout phases.

        Args:
            initial_unconstrained_iterations: Iterations without constraints
            initial_user_constraint_iterations: Iterations with user (and flow) constraints
            initial_all_constraints_iterations: Iterations with all constraints,
                including non-overlap when avoid_overlaps is set
            grid_snap_iterations: Iterations pulling nodes onto a grid
            keep_running: Leave the layout running, to be advanced with tick()
            center_graph: Centre the graph on the canvas when packing components

        Raises:
            ValidationError: For invalid input, before anything is changed
            InfeasibleConstraintsError: If the constraints cannot all hold
        """
        cfg = self._config
        nodes, resolved, root = self._resolve()
        n = len(nodes)
        N = n + 2 * len(self._groups)
        w, h = cfg.canvas_size

        self._resolved = resolved
        self._root_group = root
        self._stop_requested = False
        self._running = False
        self._alpha = 0.0
        self._last_stress = None
        self._invalidate()

        for i, v in enumerate(nodes):
            v.index = i
            if v.x is None:
                v.x = w / 2
            if v.y is None:
                v.y = h / 2

        self._compute_link_factors(resolved)
        D, G, G_all = self._build_matrices(n, N)

        x = np.zeros((2, N))
        for i, v in enumerate(nodes):
            x[0, i] = v.x
            x[1, i] = v.y
        for k, g in enumerate(self._groups):
            i = n + 2 * k
            if g.bounds is None:
                x[:, i] = x[:, i + 1] = (w / 2, h / 2)
            else:
                x[:, i] = (g.bounds.x, g.bounds.y)
                x[:, i + 1] = (g.bounds.X, g.bounds.Y)

        constraints = list(self._constraints)
        self._flow_constraints = []
        if cfg.flow is not None:
            flow = cfg.flow
            self._flow_constraints = generate_directed_edge_constraints(
                n, resolved, flow.axis, lambda rl: flow.separation(rl.link)
            )
            constraints += self._flow_constraints

        self._descent = Descent(x, D, G)
        self._descent.threshold = cfg.convergence_threshold
        self._lock_fixed_nodes()
        logger.debug("Starting layout of %d nodes, %d links, %d groups", n, len(resolved), len(self._groups))

        if initial_unconstrained_iterations:
            self._notify('on_phase_start', LayoutPhase.UNCONSTRAINED)
            self._initial_layout(initial_unconstrained_iterations)

        if constraints:
            self._descent.project = Projection(nodes, self._groups, root, constraints).project_functions()
        if initial_user_constraint_iterations:
            self._notify('on_phase_start', LayoutPhase.USER_CONSTRAINTS)
            self._descent.run(initial_user_constraint_iterations)
            self._descent.enforce_constraints()
        self._separate_overlapping_components(w, h, center_graph)

        if cfg.avoid_overlaps:
            self._sync_nodes_from_descent()
            self._descent.project = Projection(nodes, self._groups, root, constraints, True).project_functions()
            # aligning may have spread nodes out
            for i, v in enumerate(nodes):
                self._descent.x[0, i] = v.x
                self._descent.x[1, i] = v.y

        self._descent.G = G_all
        if initial_all_constraints_iterations:
            self._notify('on_phase_start', LayoutPhase.ALL_CONSTRAINTS)
            self._descent.run(initial_all_constraints_iterations)
            self._descent.enforce_constraints()

        if grid_snap_iterations:
            self._notify('on_phase_start', LayoutPhase.GRID_SNAP)
            first = nodes[0] if nodes else None
            self._descent.snap_strength = 1000.0
            self._descent.snap_grid_size = first.width if first is not None and first.width else cfg.default_node_size
            self._descent.num_grid_snap_nodes = n
            self._descent.scale_snap_by_max_h = n != N
            G0 = G_all.copy()
            G0[:n, :n] = 0.0
            self._descent.G = G0
            self._descent.run(grid_snap_iterations)
            self._descent.enforce_constraints()
            self._descent.G = G_all

        self._update_node_positions()
        self._separate_overlapping_components(w, h, center_graph)
        self._started = True

        if keep_running:
            return self.resume()
        self._status = LayoutStatus.CONVERGED
        self._notify('on_converged', LayoutPhase.TICK)
        return self

    def _initial_layout(self, iterations: int) -> None:
        """
        Unconstrained phase. With groups, lay out a flat graph in which each
        group is a node linked to its members, and start from its positions.
        """
        if not self._groups:
            self._descent.run(iterations)
            return

        n = len(self._nodes)
        vs = [Node(x=v.x, y=v.y) for v in self._nodes]
        vs.extend(Node() for _ in self._groups)
        edges = [Link(rl.source, rl.target) for rl in self._resolved]
        for k, g in enumerate(self._groups):
            for v in g.leaves:
                edges.append(Link(n + k, v.index))
            for c in g.groups:
                edges.append(Link(n + k, n + c.index))

        flat = Layout(LayoutConfig(
            canvas_size=self._config.canvas_size,
            link_distance=self._config.link_distance,
            link_lengths=LinkLengthScheme('symmetric_diff', 5.0),
            convergence_threshold=1e-4,
        ))
        flat.set_nodes(vs).set_links(edges).start(iterations, 0, 0, 0, keep_running=False)
        for i in range(n):
            self._descent.x[0, i] = vs[i].x
            self._descent.x[1, i] = vs[i].y

    def _sync_nodes_from_descent(self) -> None:
        x = self._descent.x
        for i, v in enumerate(self._nodes):
            v.x = float(x[0, i])
            v.y = float(x[1, i])

    def _update_node_positions(self) -> None:
        self._sync_nodes_from_descent()
        for v in self._nodes:
            if v.bounds is not None:
                v.bounds.set_x_centre(v.x)
                v.bounds.set_y_centre(v.y)

    def _separate_overlapping_components(self, width: float, height: float, center_graph: bool) -> None:
        """Pack connected components apart when the distances came from the graph."""
        if self._distance_matrix is not None or not self._config.handle_disconnected:
            return
        self._sync_nodes_from_descent()
        components = separate_graphs(self._nodes, self._resolved)
        apply_packing(components, width, height, self._config.default_node_size, 1.0, center_graph)
        for i, v in enumerate(self._nodes):
            self._descent.x[0, i] = v.x
            self._descent.x[1, i] = v.y
            if v.bounds is not None:
                v.bounds.set_x_centre(v.x)
                v.bounds.set_y_centre(v.y)
        if self._groups:
            self._update_group_bounds()

    def _update_group_bounds(self) -> None:
        """Fit the group boxes, and their boundary variables, to the moved members."""
        n = len(self._nodes)
        for v in self._nodes:
            v.bounds = v.make_bounds()
        for g in self._root_group.groups:
            compute_group_bounds(g)
        for k, g in enumerate(self._groups):
            i = n + 2 * k
            self._descent.x[:, i] = (g.bounds.x, g.bounds.y)
            self._descent.x[:, i + 1] = (g.bounds.X, g.bounds.Y)

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def status(self) -> LayoutStatus:
        return self._status

    def tick(self) -> LayoutStatus:
        """
        Advance the layout by one iteration.

        Returns:
            RUNNING while there is more to do, CONVERGED once alpha has
            dropped below the convergence threshold, STOPPED after stop()
        """
        if self._stop_requested:
            self._stop_requested = False
            self._running = False
            self._alpha = 0.0
            self._status = LayoutStatus.STOPPED
            logger.debug("Layout stopped")
            return self._status
        if not self._running:
            return self._status

        if self._alpha < self._config.convergence_threshold:
            self._running = False
            self._alpha = 0.0
            self._status = LayoutStatus.CONVERGED
            self._notify('on_converged', LayoutPhase.TICK)
            logger.debug("Layout converged")
            return self._status

        self._lock_fixed_nodes()
        s1 = self._descent.runge_kutta()
        if s1 == 0:
            self._alpha = 0.0
        elif self._last_stress is not None:
            self._alpha = s1
        self._last_stress = s1

        self._update_node_positions()
        self._invalidate()
        self._notify('on_tick', LayoutPhase.TICK)
        return LayoutStatus.RUNNING

    def kick(self, max_ticks: Optional[int] = None) -> LayoutStatus:
        """Tick until the layout converges or stops, or max_ticks have run."""
        status = self._status if not self._running else LayoutStatus.RUNNING
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            status = self.tick()
            ticks += 1
            if status is not LayoutStatus.RUNNING:
                break
        return status

    def resume(self) -> Layout:
        """Re-heat a started layout so that tick() iterates again."""
        return self.set_alpha(RESUME_ALPHA)

    def set_alpha(self, alpha: float) -> Layout:
        """
        Set the cooling parameter.

        A positive value keeps a running layout hot, or starts ticking again
        after it converged or stopped. Zero lets the next tick() converge.

        Raises:
            InvalidConfigError: If alpha is negative or not finite
            LayoutError: If a positive alpha is set before start()
        """
        alpha = float(alpha)
        if not math.isfinite(alpha) or alpha < 0:
            raise InvalidConfigError(f"alpha must be a non-negative number, got {alpha!r}")
        if alpha == 0:
            self._alpha = 0.0
            return self
        if self._descent is None:
            raise LayoutError("Cannot heat a layout before start()")
        self._stop_requested = False
        self._alpha = alpha
        if not self._running:
            self._running = True
            self._status = LayoutStatus.RUNNING
            self._notify('on_phase_start', LayoutPhase.TICK)
        return self

    def stop(self) -> Layout:
        """Ask the layout to stop; the next tick() returns STOPPED."""
        self._stop_requested = True
        return self

    # power graph

    def power_graph_groups(self) -> PowerGraph:
        """
        Build the power graph of the current graph and install its groups.

        Existing groups are kept as fixed modules. Returns the power graph,
        whose edges refer to node indices and the newly installed groups.
        """
        nodes = self.nodes
        validate_nodes(nodes)
        resolved = resolve_links(nodes, self._links)
        root = resolve_groups(nodes, self._groups) if self._groups else None
        pg = get_groups(len(nodes), resolved, _LayoutLinkAccessor(self), root)
        self.set_groups(pg.groups)
        return pg

    # edge routing

    def prepare_edge_routing(self, node_margin: float = 0.0) -> VisibilityGraph:
        """
        Build the visibility graph around the current node boxes.

        Assumes the node boxes do not overlap.

        Raises:
            RoutingError: If start() has not completed
        """
        if not self._started:
            raise RoutingError("prepare_edge_routing() requires a completed start()")
        for v in self._nodes:
            v.bounds = v.make_bounds()
        self._visibility_graph = VisibilityGraph([v.bounds for v in self._nodes], node_margin)
        return self._visibility_graph

    def route_edge(self, link: Link, arrowhead_size: float = 5.0) -> list[Point]:
        """
        Route a link around the node boxes.

        Args:
            link: Link between two of the layout's nodes
            arrowhead_size: Distance to stop short of the target boundary

        Returns:
            Polyline from the source boundary to the start of the arrow head

        Raises:
            RoutingError: If prepare_edge_routing() has not been called since
                the positions last changed
        """
        if self._visibility_graph is None:
            raise RoutingError("route_edge() requires prepare_edge_routing() first")
        try:
            rl = resolve_links(self._nodes, [link])[0]
        except InvalidLinkError as e:
            raise InvalidLinkError(f"Cannot route {link!r}: {e}") from e
        s = self._nodes[rl.source]
        t = self._nodes[rl.target]
        return route(
            self._visibility_graph,
            rl.source,
            rl.target,
            Point(s.x, s.y),
            Point(t.x, t.y),
            arrowhead_size,
        )
