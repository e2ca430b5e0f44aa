"""
Variable placement with separation constraints (VPSC).

Finds positions for a set of weighted variables that satisfy separation
constraints ``right - left >= gap`` (or ``== gap``) while minimising the
weighted squared displacement from their desired positions.

The solver is an active-set method over blocks: variables joined by active
(tight) constraints move together as one block. Violated constraints merge
blocks; active constraints whose Lagrange multiplier goes negative split
them again. Block trees are walked iteratively so that long chains of
constraints do not exhaust the interpreter stack.
"""

from __future__ import annotations

from typing import Callable, Iterator, NamedTuple, Optional, Sequence
import logging
import math

from .errors import InfeasibleConstraintsError

logger = logging.getLogger(__name__)


class PositionStats:
    """Running sums giving the optimal position of a block."""

    __slots__ = ('scale', 'AB', 'AD', 'A2')

    def __init__(self, scale: float):
        self.scale = scale
        self.AB = 0.0
        self.AD = 0.0
        self.A2 = 0.0

    def add_variable(self, v: Variable) -> None:
        ai = self.scale / v.scale
        bi = v.offset / v.scale
        wi = v.weight
        self.AB += wi * ai * bi
        self.AD += wi * ai * v.desired_position
        self.A2 += wi * ai * ai

    def reset(self) -> None:
        self.AB = self.AD = self.A2 = 0.0

    def get_posn(self) -> float:
        return (self.AD - self.AB) / self.A2


class Variable:
    """
    A position to be solved for.

    Attributes:
        desired_position: Where the variable would like to be
        weight: How strongly it resists being moved
        scale: Multiplier applied to the position in constraints
    """

    def __init__(self, desired_position: float, weight: float = 1.0, scale: float = 1.0):
        self.desired_position = desired_position
        self.weight = weight
        self.scale = scale
        self.offset = 0.0
        self.block: Optional[Block] = None
        self.c_in: list[Constraint] = []
        self.c_out: list[Constraint] = []

    def dfdv(self) -> float:
        """Derivative of the cost with respect to this variable."""
        return 2.0 * self.weight * (self.position() - self.desired_position)

    def position(self) -> float:
        return (self.block.ps.scale * self.block.posn + self.offset) / self.scale

    def active_neighbours(self, prev: Optional[Variable] = None) -> Iterator[tuple[Constraint, Variable]]:
        """Yield (constraint, variable) pairs reachable through active constraints."""
        for c in self.c_out:
            if c.active and c.right is not prev:
                yield c, c.right
        for c in self.c_in:
            if c.active and c.left is not prev:
                yield c, c.left

    def __repr__(self) -> str:
        return f"Variable(desired={self.desired_position:g}, weight={self.weight:g})"


class Constraint:
    """
    Separation constraint ``right.scale * right - left.scale * left >= gap``.

    With ``equality`` set the constraint must hold exactly and is never
    split out of its block.
    """

    def __init__(self, left: Variable, right: Variable, gap: float, equality: bool = False):
        self.left = left
        self.right = right
        self.gap = gap
        self.equality = equality
        self.lm = 0.0
        self.active = False
        self.unsatisfiable = False
        self.order = 0

    def slack(self) -> float:
        """Positive when satisfied, negative when violated."""
        if self.unsatisfiable:
            return math.inf
        return (self.right.scale * self.right.position() - self.gap
                - self.left.scale * self.left.position())

    def __repr__(self) -> str:
        op = '==' if self.equality else '>='
        return f"Constraint({self.left!r} + {self.gap:g} {op} {self.right!r})"


class Block:
    """Variables joined by a tree of active constraints."""

    def __init__(self, v: Variable):
        self.vars: list[Variable] = []
        self.posn = 0.0
        self.ps = PositionStats(v.scale)
        self.block_ind = 0
        v.offset = 0.0
        self._add_variable(v)

    def _add_variable(self, v: Variable) -> None:
        v.block = self
        self.vars.append(v)
        self.ps.add_variable(v)
        self.posn = self.ps.get_posn()

    def update_weighted_position(self) -> None:
        self.ps.reset()
        for v in self.vars:
            self.ps.add_variable(v)
        self.posn = self.ps.get_posn()

    @staticmethod
    def _tree_order(root: Variable) -> list[tuple[Variable, Optional[Variable], Optional[Constraint]]]:
        """Depth-first order of the active tree from root as (var, parent, edge)."""
        order = []
        stack: list[tuple[Variable, Optional[Variable], Optional[Constraint]]] = [(root, None, None)]
        while stack:
            v, prev, c = stack.pop()
            order.append((v, prev, c))
            for c2, u in v.active_neighbours(prev):
                stack.append((u, v, c2))
        return order

    def _compute_lm(self, root: Variable, visit: Optional[Callable[[Constraint], None]] = None) -> None:
        """
        Compute the Lagrange multiplier of every active constraint in the block.

        Each subtree's cost derivative is pushed up into its parent, and the
        multiplier of the edge into the subtree is that derivative, signed by
        the edge's direction.
        """
        acc: dict[Variable, float] = {}
        for v, prev, c in reversed(self._tree_order(root)):
            dfdv = (v.dfdv() + acc.pop(v, 0.0)) / v.scale
            if c is None:
                continue
            if v is c.right:
                c.lm = dfdv
                acc[prev] = acc.get(prev, 0.0) + dfdv * c.left.scale
            else:
                c.lm = -dfdv
                acc[prev] = acc.get(prev, 0.0) + dfdv * c.right.scale
            if visit is not None:
                visit(c)

    def find_min_lm(self) -> Optional[Constraint]:
        """Active inequality with the smallest Lagrange multiplier."""
        candidates: list[Constraint] = []
        self._compute_lm(self.vars[0], candidates.append)
        m: Optional[Constraint] = None
        for c in candidates:
            if not c.equality and (m is None or c.lm < m.lm or (c.lm == m.lm and c.order < m.order)):
                m = c
        return m

    def _path(self, lv: Variable, rv: Variable) -> list[tuple[Constraint, Variable]]:
        """Active constraints on the tree path from lv to rv, with the variable each leads to."""
        parent: dict[Variable, tuple[Constraint, Variable]] = {}
        stack = [lv]
        seen = {lv}
        while stack:
            v = stack.pop()
            if v is rv:
                break
            for c, u in v.active_neighbours():
                if u not in seen:
                    seen.add(u)
                    parent[u] = (c, v)
                    stack.append(u)
        if rv not in parent:
            return []
        path = []
        v = rv
        while v is not lv:
            c, prev = parent[v]
            path.append((c, v))
            v = prev
        path.reverse()
        return path

    def _find_min_lm_between(self, lv: Variable, rv: Variable) -> Optional[Constraint]:
        self._compute_lm(lv)
        m: Optional[Constraint] = None
        for c, next_var in self._path(lv, rv):
            if not c.equality and c.right is next_var and (m is None or c.lm < m.lm):
                m = c
        return m

    def is_active_directed_path_between(self, u: Variable, v: Variable) -> bool:
        """True if v can be reached from u following active constraints left to right."""
        stack = [u]
        seen = {u}
        while stack:
            w = stack.pop()
            if w is v:
                return True
            for c in w.c_out:
                if c.active and c.right not in seen:
                    seen.add(c.right)
                    stack.append(c.right)
        return False

    @staticmethod
    def split(c: Constraint) -> tuple[Block, Block]:
        """Deactivate c and rebuild the two blocks on either side of it."""
        c.active = False
        return Block._create_split_block(c.left), Block._create_split_block(c.right)

    @staticmethod
    def _create_split_block(start: Variable) -> Block:
        b = Block(start)
        for v, prev, c in Block._tree_order(start):
            if c is None:
                continue
            v.offset = prev.offset + (c.gap if v is c.right else -c.gap)
            b._add_variable(v)
        return b

    def split_between(self, vl: Variable, vr: Variable) -> Optional[tuple[Constraint, Block, Block]]:
        """
        Split the block at the weakest constraint on the path from vl to vr.

        Returns:
            (constraint, left block, right block), or None without a split point
        """
        c = self._find_min_lm_between(vl, vr)
        if c is None:
            return None
        lb, rb = Block.split(c)
        return c, lb, rb

    def merge_across(self, b: Block, c: Constraint, dist: float) -> None:
        """Absorb block b, activating c with b shifted by dist."""
        c.active = True
        for v in b.vars:
            v.offset += dist
            self._add_variable(v)
        self.posn = self.ps.get_posn()

    def cost(self) -> float:
        total = 0.0
        for v in self.vars:
            d = v.position() - v.desired_position
            total += d * d * v.weight
        return total


class Blocks:
    """The current partition of the variables into blocks."""

    def __init__(self, vs: list[Variable]):
        self.vs = vs
        self._list: list[Block] = []
        for i, v in enumerate(vs):
            b = Block(v)
            b.block_ind = i
            self._list.append(b)

    def __len__(self) -> int:
        return len(self._list)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._list)

    def cost(self) -> float:
        return sum(b.cost() for b in self._list)

    def insert(self, b: Block) -> None:
        b.block_ind = len(self._list)
        self._list.append(b)

    def remove(self, b: Block) -> None:
        last = self._list.pop()
        if b is not last:
            self._list[b.block_ind] = last
            last.block_ind = b.block_ind

    def merge(self, c: Constraint) -> None:
        """Merge the blocks either side of c, the smaller into the larger."""
        lb = c.left.block
        rb = c.right.block
        dist = c.right.offset - c.left.offset - c.gap
        if len(lb.vars) < len(rb.vars):
            rb.merge_across(lb, c, dist)
            self.remove(lb)
        else:
            lb.merge_across(rb, c, -dist)
            self.remove(rb)

    def update_block_positions(self) -> None:
        for b in self._list:
            b.update_weighted_position()

    def split(self, inactive: list[Constraint]) -> None:
        """Split every block across its active constraint with a negative multiplier."""
        self.update_block_positions()
        for b in list(self._list):
            c = b.find_min_lm()
            if c is not None and c.lm < Solver.LAGRANGIAN_TOLERANCE:
                b = c.left.block
                for nb in Block.split(c):
                    self.insert(nb)
                self.remove(b)
                inactive.append(c)


class Solver:
    """
    Solves for variable positions satisfying the separation constraints with
    minimum weighted squared displacement from the desired positions.

    Raises InfeasibleConstraintsError from satisfy()/solve() when a violated
    constraint closes a contradictory cycle with the active constraints.
    Violations smaller than FEASIBILITY_TOLERANCE in such cycles are treated
    as rounding noise and the constraint is ignored.
    """

    LAGRANGIAN_TOLERANCE = -1e-4
    ZERO_UPPERBOUND = -1e-10
    FEASIBILITY_TOLERANCE = 1e-6
    TIE_TOLERANCE = 1e-9
    COST_TOLERANCE = 1e-4

    def __init__(self, vs: list[Variable], cs: list[Constraint]):
        self.vs = vs
        self.cs = cs
        self.bs: Optional[Blocks] = None

        for v in vs:
            v.c_in = []
            v.c_out = []
        for i, c in enumerate(cs):
            c.order = i
            c.active = False
            c.unsatisfiable = False
            c.left.c_out.append(c)
            c.right.c_in.append(c)
        self.inactive = list(cs)

    def cost(self) -> float:
        return self.bs.cost()

    def set_starting_positions(self, ps: Sequence[float]) -> None:
        """Reset the block structure with every variable at the given position."""
        self.inactive = list(self.cs)
        for c in self.cs:
            c.active = False
        self.bs = Blocks(self.vs)
        for b, p in zip(self.bs, ps):
            b.posn = p

    def set_desired_positions(self, ps: Sequence[float]) -> None:
        for v, p in zip(self.vs, ps):
            v.desired_position = p

    def _most_violated(self) -> Optional[Constraint]:
        """
        Pick the next constraint to activate and take it off the inactive list.

        Equalities come first, in input order. Otherwise the constraint with
        the least slack wins; near-ties go to the one whose left variable is
        further left, then to the earlier constraint.
        """
        best_i = -1
        best: Optional[Constraint] = None
        best_slack = math.inf
        for i, c in enumerate(self.inactive):
            if c.unsatisfiable:
                continue
            if c.equality:
                if best is None or not best.equality or c.order < best.order:
                    best, best_i = c, i
                continue
            if best is not None and best.equality:
                continue
            slack = c.slack()
            if best is None or slack < best_slack - Solver.TIE_TOLERANCE:
                best, best_i, best_slack = c, i, slack
            elif slack <= best_slack + Solver.TIE_TOLERANCE:
                lp, bp = c.left.position(), best.left.position()
                if lp < bp or (lp == bp and c.order < best.order):
                    best, best_i, best_slack = c, i, slack

        if best is not None and (best.equality or (best_slack < Solver.ZERO_UPPERBOUND and not best.active)):
            self.inactive[best_i] = self.inactive[-1]
            self.inactive.pop()
        return best

    def _reject(self, c: Constraint, reason: str) -> None:
        violation = -c.slack() if not c.equality else abs(c.slack())
        if violation > Solver.FEASIBILITY_TOLERANCE:
            raise InfeasibleConstraintsError(
                f"{reason}: {c!r} violated by {violation:g}", constraint=c
            )
        logger.debug("Ignoring redundant %r (violation %g)", c, violation)
        c.unsatisfiable = True

    def satisfy(self) -> None:
        """Activate violated constraints until every constraint holds."""
        if self.bs is None:
            self.bs = Blocks(self.vs)

        self.bs.split(self.inactive)
        v = self._most_violated()
        while v is not None and (v.equality or (v.slack() < Solver.ZERO_UPPERBOUND and not v.active)):
            lb = v.left.block
            rb = v.right.block
            if lb is not rb:
                self.bs.merge(v)
            elif lb.is_active_directed_path_between(v.right, v.left):
                self._reject(v, "Cycle of separation constraints")
            else:
                split = lb.split_between(v.left, v.right)
                if split is None:
                    self._reject(v, "No split point for constraint")
                else:
                    c, left, right = split
                    self.bs.insert(left)
                    self.bs.insert(right)
                    self.bs.remove(lb)
                    self.inactive.append(c)
                    if v.slack() >= 0 and not v.equality:
                        self.inactive.append(v)
                    else:
                        self.bs.merge(v)
            v = self._most_violated()

    def solve(self) -> float:
        """
        Solve to convergence.

        Returns:
            Final cost
        """
        self.satisfy()
        last_cost = math.inf
        cost = self.bs.cost()
        while abs(last_cost - cost) > Solver.COST_TOLERANCE:
            self.satisfy()
            last_cost = cost
            cost = self.bs.cost()
        return cost


class Span(NamedTuple):
    """An interval to be placed on a line."""

    size: float
    desired_center: float


class OneDimensionResult(NamedTuple):
    new_centers: list[float]
    lower_bound: float
    upper_bound: float


def remove_overlap_in_one_dimension(
    spans: Sequence[Span],
    lower_bound: Optional[float] = None,
    upper_bound: Optional[float] = None,
) -> OneDimensionResult:
    """
    Remove overlap between consecutive spans on a line.

    Spans keep their order and stay as close as possible to their desired
    centres. Optional bounds are treated as heavy variables that the end
    spans may push against.

    Args:
        spans: Spans in left-to-right order
        lower_bound: Optional lower bound
        upper_bound: Optional upper bound

    Returns:
        New span centres and the resulting bounds
    """
    n = len(spans)
    if n == 0:
        return OneDimensionResult([], lower_bound or 0.0, upper_bound or 0.0)

    vs = [Variable(s.desired_center) for s in spans]
    cs = [
        Constraint(vs[i], vs[i + 1], (spans[i].size + spans[i + 1].size) / 2)
        for i in range(n - 1)
    ]

    left_most, right_most = vs[0], vs[-1]
    left_half = spans[0].size / 2
    right_half = spans[-1].size / 2
    v_lower: Optional[Variable] = None
    v_upper: Optional[Variable] = None
    if lower_bound is not None:
        v_lower = Variable(lower_bound, left_most.weight * 1000)
        vs.append(v_lower)
        cs.append(Constraint(v_lower, left_most, left_half))
    if upper_bound is not None:
        v_upper = Variable(upper_bound, right_most.weight * 1000)
        vs.append(v_upper)
        cs.append(Constraint(right_most, v_upper, right_half))

    Solver(vs, cs).solve()

    return OneDimensionResult(
        [v.position() for v in vs[:n]],
        v_lower.position() if v_lower else left_most.position() - left_half,
        v_upper.position() if v_upper else right_most.position() + right_half,
    )
