"""
Stress majorisation by gradient descent.

Stress over node positions x is

    stress = Sum[w[i,j] * (|x_i - x_j| - D[i,j])^2],  w[i,j] = 1 / D[i,j]^2

for a matrix D of ideal distances. Each iteration takes the gradient and the
per-axis Hessian, steps by the optimal step size along the gradient and, when
projection functions are installed, projects every step back onto the
constraint set. Steps are combined with fourth-order Runge-Kutta.
"""

from __future__ import annotations

from typing import Callable, Optional
import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

ProjectFunction = Callable[[np.ndarray, np.ndarray, np.ndarray], None]


class Locks:
    """Nodes held at fixed positions during descent."""

    def __init__(self):
        self.locks: dict[int, np.ndarray] = {}

    def add(self, id: int, x: np.ndarray) -> None:
        """
        Args:
            id: Index of the node to lock
            x: Required position of the node
        """
        self.locks[id] = np.asarray(x, dtype=float)

    def clear(self) -> None:
        self.locks = {}

    def is_empty(self) -> bool:
        return not self.locks

    def items(self):
        return self.locks.items()


class PseudoRandom:
    """
    Seeded linear congruential generator.

    Used for the offsets that pull coincident nodes apart, so that identical
    input always produces an identical layout.
    """

    a = 214013
    c = 2531011
    m = 2147483648
    range = 32767

    def __init__(self, seed: int = 1):
        self.seed = seed

    def get_next(self) -> float:
        """Real in [0, 1]."""
        self.seed = (self.seed * self.a + self.c) % self.m
        return (self.seed >> 16) / self.range

    def get_next_between(self, min_val: float, max_val: float) -> float:
        return min_val + self.get_next() * (max_val - min_val)


class Descent:
    """
    Gradient descent over a k x n position array.

    Attributes:
        x: Positions, one row per dimension
        D: Ideal distances (n x n)
        G: Optional goal weights. G[i,j] <= 1 scales the pair's term;
            G[i,j] > 1 only repels, ignoring the pair once it is further
            apart than D[i,j]
        threshold: Relative stress change below which run() stops
        project: Optional per-axis projection functions
        locks: Pinned nodes
    """

    ZERO_DISTANCE = 1e-9

    def __init__(self, x: np.ndarray, D: np.ndarray, G: Optional[np.ndarray] = None):
        self.x = np.array(x, dtype=float)
        self.D = np.asarray(D, dtype=float)
        self.G = G
        self.k, self.n = self.x.shape

        self.threshold = 0.0001
        self.H = np.zeros((self.k, self.n, self.n))
        self.g = np.zeros((self.k, self.n))
        self.Hd = np.zeros((self.k, self.n))
        self.a = np.zeros((self.k, self.n))
        self.b = np.zeros((self.k, self.n))
        self.c = np.zeros((self.k, self.n))
        self.d = np.zeros((self.k, self.n))
        self.e = np.zeros((self.k, self.n))
        self.ia = np.zeros((self.k, self.n))
        self.ib = np.zeros((self.k, self.n))

        self.locks = Locks()

        upper = self.D[np.triu_indices(self.n, k=1)]
        positive = upper[(upper > 0) & np.isfinite(upper)]
        self.min_d = float(positive.min()) if positive.size else 1.0

        self.num_grid_snap_nodes = 0
        self.snap_grid_size = 100.0
        self.snap_strength = 1000.0
        self.scale_snap_by_max_h = False

        self.random = PseudoRandom()
        self.project: Optional[list[ProjectFunction]] = None

    def offset_dir(self) -> np.ndarray:
        """Pseudo-random direction of length min_d."""
        u = np.array([self.random.get_next_between(0.01, 1) - 0.5 for _ in range(self.k)])
        return u * (self.min_d / np.linalg.norm(u))

    def _separate_coincident(self, x: np.ndarray) -> None:
        """Move apart (in place) any nodes sitting on top of each other."""
        if self.n < 2:
            return
        diff = x[:, :, np.newaxis] - x[:, np.newaxis, :]
        close = np.triu(np.sum(diff * diff, axis=0) < Descent.ZERO_DISTANCE, k=1)
        if not close.any():
            return
        moved = set()
        for u, v in zip(*np.nonzero(close)):
            if v not in moved and u not in moved:
                x[:, v] += self.offset_dir()
                moved.add(v)
        logger.debug("Nudged %d coincident nodes apart", len(moved))

    def compute_derivatives(self, x: np.ndarray) -> None:
        """
        Gradient (self.g) and Hessian (self.H) of the stress at x.

        Args:
            x: Positions (k x n); coincident nodes in x are nudged apart first
        """
        n = self.n
        if n < 1:
            return
        self._separate_coincident(x)

        diff = x[:, :, np.newaxis] - x[:, np.newaxis, :]
        diff2 = diff * diff
        sd2 = np.sum(diff2, axis=0)
        l = np.sqrt(np.maximum(sd2, Descent.ZERO_DISTANCE))

        weights = np.ones((n, n)) if self.G is None else np.asarray(self.G, dtype=float)
        # p-stress pairs only push apart
        repel_only = (weights > 1) & (l > self.D)
        valid = (~np.eye(n, dtype=bool)) & np.isfinite(self.D) & (self.D > 0) & ~repel_only
        weights = np.minimum(weights, 1.0)

        D = np.where(valid, self.D, 1.0)
        D2 = D * D
        l = np.where(valid, l, 1.0)
        sd2 = np.where(valid, sd2, 1.0)
        l3 = sd2 * l

        gs = np.where(valid, 2 * weights * (l - D) / (D2 * l), 0.0)
        hs = np.where(valid, -2 * weights / (D2 * l3), 0.0)

        self.g = np.sum(diff * gs[np.newaxis], axis=2)
        self.H = np.where(valid[np.newaxis], hs[np.newaxis] * (2 * l3 + D * (diff2 - sd2)), 0.0)
        Huu = -np.sum(self.H, axis=2)
        for i in range(self.k):
            np.fill_diagonal(self.H[i], Huu[i])
        max_h = float(np.max(np.abs(Huu))) if Huu.size else 0.0

        if self.num_grid_snap_nodes:
            self._apply_grid_snap(x, max_h)

        for u, p in self.locks.items():
            for i in range(self.k):
                self.H[i, u, u] += max_h
                self.g[i, u] -= max_h * (p[i] - x[i, u])

        if not (np.isfinite(self.g).all() and np.isfinite(self.H).all()):
            logger.warning("Non-finite stress derivatives; zeroing the affected terms")
            self.g = np.nan_to_num(self.g, nan=0.0, posinf=0.0, neginf=0.0)
            self.H = np.nan_to_num(self.H, nan=0.0, posinf=0.0, neginf=0.0)

    def _apply_grid_snap(self, x: np.ndarray, max_h: float) -> None:
        """Pull the first num_grid_snap_nodes towards the centre of the grid cell they are in."""
        g = self.snap_grid_size
        if not g > 0:
            return
        r = g / 2
        k = self.snap_strength / (r * r)
        if self.scale_snap_by_max_h:
            k *= max_h
        m = self.num_grid_snap_nodes
        xs = x[:, :m]
        dx = xs - (np.floor(xs / g) + 0.5) * g
        idx = np.arange(m)
        self.g[:, :m] += k * dx
        for i in range(self.k):
            self.H[i, idx, idx] += k

    def compute_step_size(self, d: np.ndarray) -> float:
        """
        Optimal step along direction d: (g . d) / (d . H . d).

        Returns:
            The step size, or 0 when the curvature along d is zero or undefined
        """
        numerator = 0.0
        denominator = 0.0
        for i in range(self.k):
            numerator += float(np.dot(self.g[i], d[i]))
            self.Hd[i] = self.H[i] @ d[i]
            denominator += float(np.dot(d[i], self.Hd[i]))
        if denominator == 0 or not math.isfinite(denominator) or not math.isfinite(numerator):
            return 0.0
        return numerator / denominator

    def step_and_project(self, x0: np.ndarray, r: np.ndarray, d: np.ndarray, step_size: float) -> None:
        """
        Step from x0 along -d into r, projecting each axis when projections are set.

        The x step is projected first; the y projection then sees the
        projected x positions.
        """
        r[:] = x0
        if self.project and self.k >= 2:
            r[0] -= step_size * d[0]
            self.project[0](x0[0], x0[1], r[0])
            r[1] -= step_size * d[1]
            self.project[1](r[0], x0[1], r[1])
            for i in range(2, self.k):
                r[i] -= step_size * d[i]
        else:
            r -= step_size * d

    def compute_next_position(self, x0: np.ndarray, r: np.ndarray) -> None:
        self.compute_derivatives(x0)
        alpha = self.compute_step_size(self.g)
        self.step_and_project(x0, r, self.g, alpha)

        if self.project:
            # scaled projection: re-step along the projected displacement
            self.e[:] = x0 - r
            beta = self.compute_step_size(self.e)
            beta = max(0.2, min(beta, 1.0))
            self.step_and_project(x0, r, self.e, beta)

    def runge_kutta(self) -> float:
        """
        One fourth-order Runge-Kutta iteration.

        Returns:
            Squared displacement of the positions
        """
        self.compute_next_position(self.x, self.a)
        self.ia[:] = self.x + (self.a - self.x) / 2.0
        self.compute_next_position(self.ia, self.b)
        self.ib[:] = self.x + (self.b - self.x) / 2.0
        self.compute_next_position(self.ib, self.c)
        self.compute_next_position(self.c, self.d)

        new_x = (self.a + 2.0 * self.b + 2.0 * self.c + self.d) / 6.0
        bad = ~np.isfinite(new_x)
        if bad.any():
            logger.warning("Discarding %d non-finite coordinates", int(bad.sum()))
            new_x[bad] = self.x[bad]
        diff = self.x - new_x
        self.x[:] = new_x
        return float(np.sum(diff * diff))

    def run(self, iterations: int) -> float:
        """
        Iterate until the relative change in displacement drops below threshold.

        Args:
            iterations: Maximum number of iterations

        Returns:
            The displacement of the last iteration
        """
        stress = math.inf
        while iterations > 0:
            iterations -= 1
            s = self.runge_kutta()
            converged = s == 0 or abs(stress / s - 1) < self.threshold
            stress = s
            if converged:
                break
        return stress

    def enforce_constraints(self, rounds: int = 3) -> None:
        """
        Project the current positions without moving them, so they end up feasible.

        Projection regenerates overlap constraints from the geometry it is
        given, so this repeats until a round leaves the positions unchanged.
        """
        if not self.project or self.k < 2:
            return
        for _ in range(rounds):
            x0 = self.x.copy()
            self.project[0](x0[0], x0[1], self.x[0])
            self.project[1](self.x[0], x0[1], self.x[1])
            if np.allclose(self.x, x0, atol=1e-6):
                break

    def compute_stress(self) -> float:
        """Sum over pairs of ((D - l) / D)^2, skipping pairs with no finite positive ideal distance."""
        if self.n < 2:
            return 0.0
        iu, iv = np.triu_indices(self.n, k=1)
        d = self.D[iu, iv]
        l = np.linalg.norm(self.x[:, iu] - self.x[:, iv], axis=0)
        ok = np.isfinite(d) & (d > 0)
        return float(np.sum(((d[ok] - l[ok]) / d[ok]) ** 2))
