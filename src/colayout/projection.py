"""
Projection of proposed positions onto the feasible region.

After each descent step, Projection moves the proposed positions, one axis
at a time, to the nearest positions satisfying the user constraints and
(when overlap avoidance is on) the non-overlap and group containment
constraints generated from the current geometry.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence
import logging

import numpy as np

from .constraints import AlignmentConstraint, SeparationConstraint, UserConstraint
from .graph import Group, Node
from .rectangle import Rectangle, compute_group_bounds, generate_group_constraints
from .vpsc import Constraint, Solver, Variable

logger = logging.getLogger(__name__)

DEFAULT_FIXED_WEIGHT = 1000.0

ProjectFunction = Callable[[np.ndarray, np.ndarray, np.ndarray], None]


class IndexedVariable(Variable):
    """Solver variable tied to a row of the position arrays."""

    def __init__(self, index: int, w: float):
        super().__init__(0.0, w)
        self.index = index


class Projection:
    """
    Per-axis projection for a node set with optional groups and constraints.

    Position arrays have one entry per node followed by two per group (the
    group's min and max boundary), matching the descent engine's layout.
    """

    def __init__(
        self,
        nodes: Sequence[Node],
        groups: Sequence[Group],
        root_group: Optional[Group] = None,
        constraints: Optional[Sequence[UserConstraint]] = None,
        avoid_overlaps: bool = False,
    ):
        self.nodes = nodes
        self.groups = groups
        self.root_group = root_group
        self.avoid_overlaps = avoid_overlaps

        self.variables: list[Variable] = []
        for i, v in enumerate(nodes):
            v.variable = IndexedVariable(i, 1.0)
            self.variables.append(v.variable)

        self.x_constraints: list[Constraint] = []
        self.y_constraints: list[Constraint] = []
        if constraints:
            self._create_constraints(constraints)

        if avoid_overlaps and root_group is not None:
            for v in nodes:
                v.bounds = v.make_bounds()
            compute_group_bounds(root_group)
            i = len(nodes)
            for g in groups:
                stiffness = g.stiffness if g.stiffness is not None else 0.01
                g.min_var = IndexedVariable(i, stiffness)
                g.max_var = IndexedVariable(i + 1, stiffness)
                self.variables.extend((g.min_var, g.max_var))
                i += 2

    def _create_separation(self, c: SeparationConstraint) -> Constraint:
        return Constraint(
            self.nodes[c.left].variable,
            self.nodes[c.right].variable,
            c.gap,
            c.equality,
        )

    def _make_feasible(self, c: AlignmentConstraint) -> None:
        """
        Spread the members of an alignment along the other axis so that lining
        them up cannot force an overlap.
        """
        if not self.avoid_overlaps:
            return
        axis, dim = ('y', 'height') if c.axis == 'x' else ('x', 'width')
        vs = sorted((self.nodes[o.node] for o in c.offsets), key=lambda v: getattr(v, axis))
        p = None
        for v in vs:
            if p is not None:
                next_pos = getattr(p, axis) + (getattr(p, dim) or 0.0)
                if next_pos > getattr(v, axis):
                    setattr(v, axis, next_pos)
            p = v

    def _create_alignment(self, c: AlignmentConstraint) -> None:
        first = c.offsets[0]
        u = self.nodes[first.node].variable
        self._make_feasible(c)
        cs = self.x_constraints if c.axis == 'x' else self.y_constraints
        for o in c.offsets[1:]:
            v = self.nodes[o.node].variable
            cs.append(Constraint(u, v, o.offset - first.offset, True))

    def _create_constraints(self, constraints: Sequence[UserConstraint]) -> None:
        for c in constraints:
            if isinstance(c, SeparationConstraint):
                cs = self.x_constraints if c.axis == 'x' else self.y_constraints
                cs.append(self._create_separation(c))
        for c in constraints:
            if isinstance(c, AlignmentConstraint):
                self._create_alignment(c)

    def project_functions(self) -> list[ProjectFunction]:
        """[x_project, y_project] for the descent engine."""
        return [self.x_project, self.y_project]

    def _setup_variables_and_bounds(
        self,
        x0: np.ndarray,
        y0: np.ndarray,
        desired: np.ndarray,
        pinned: Callable[[Node], float],
    ) -> None:
        for i, v in enumerate(self.nodes):
            if v.fixed:
                v.variable.weight = v.fixed_weight if v.fixed_weight else DEFAULT_FIXED_WEIGHT
                desired[i] = pinned(v)
            else:
                v.variable.weight = 1.0
            w = (v.width or 0.0) / 2
            h = (v.height or 0.0) / 2
            v.bounds = Rectangle(x0[i] - w, x0[i] + w, y0[i] - h, y0[i] + h)

    def _project(
        self,
        x0: np.ndarray,
        y0: np.ndarray,
        start: np.ndarray,
        desired: np.ndarray,
        axis: str,
        pinned: Callable[[Node], float],
        cs: list[Constraint],
    ) -> None:
        self._setup_variables_and_bounds(x0, y0, desired, pinned)
        grouped = self.root_group is not None and self.avoid_overlaps
        if grouped:
            compute_group_bounds(self.root_group)
            cs = cs + generate_group_constraints(self.root_group, axis)

        solver = Solver(self.variables, cs)
        solver.set_starting_positions(start)
        solver.set_desired_positions(desired)
        solver.solve()

        for v in self.nodes:
            p = desired[v.variable.index] = v.variable.position()
            if axis == 'x':
                v.bounds.set_x_centre(p)
            else:
                v.bounds.set_y_centre(p)

        if grouped:
            for g in self.groups:
                lo = desired[g.min_var.index] = g.min_var.position()
                hi = desired[g.max_var.index] = g.max_var.position()
                p2 = (g.padding or 0.0) / 2
                if axis == 'x':
                    g.bounds.x = lo - p2
                    g.bounds.X = hi + p2
                else:
                    g.bounds.y = lo - p2
                    g.bounds.Y = hi + p2
            compute_group_bounds(self.root_group)

    def x_project(self, x0: np.ndarray, y0: np.ndarray, x: np.ndarray) -> None:
        """
        Project proposed x positions (in place) given the current positions x0, y0.
        """
        self._project(x0, y0, x0, x, 'x', lambda v: v.px, self.x_constraints)

    def y_project(self, x0: np.ndarray, y0: np.ndarray, y: np.ndarray) -> None:
        """
        Project proposed y positions (in place); x0 should already be projected.
        """
        self._project(x0, y0, y0, y, 'y', lambda v: v.py, self.y_constraints)
