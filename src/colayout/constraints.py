"""
User-facing layout constraints.

Constraints refer to nodes by index and act on one axis at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

from .config import Axis
from .errors import InvalidConstraintError


def _check_axis(axis: str) -> None:
    if axis not in ('x', 'y'):
        raise InvalidConstraintError(f"Constraint axis must be 'x' or 'y', got {axis!r}")


def _check_node(i: int, n: int) -> None:
    if not isinstance(i, int) or isinstance(i, bool) or not 0 <= i < n:
        raise InvalidConstraintError(f"Constraint node {i!r} out of range for {n} nodes")


@dataclass
class SeparationConstraint:
    """
    ``pos[right] - pos[left] >= gap`` on axis (``== gap`` with equality).
    """

    axis: Axis
    left: int
    right: int
    gap: float = 0.0
    equality: bool = False

    def validate(self, n: int) -> None:
        _check_axis(self.axis)
        _check_node(self.left, n)
        _check_node(self.right, n)
        if self.left == self.right:
            raise InvalidConstraintError(f"Constraint between node {self.left} and itself")


@dataclass
class AlignmentSpecification:
    """A node taking part in an alignment, offset from the common line."""

    node: int
    offset: float = 0.0


@dataclass
class AlignmentConstraint:
    """
    Nodes aligned on axis: each node sits at the first node's position plus
    its offset relative to the first node's offset.
    """

    axis: Axis
    offsets: list[AlignmentSpecification] = field(default_factory=list)

    def validate(self, n: int) -> None:
        _check_axis(self.axis)
        if not self.offsets:
            raise InvalidConstraintError("Alignment constraint needs at least one node")
        for o in self.offsets:
            _check_node(o.node, n)


UserConstraint = Union[SeparationConstraint, AlignmentConstraint]


def validate_constraints(constraints: Sequence[UserConstraint], n: int) -> None:
    """
    Check every constraint against a graph of n nodes.

    Raises:
        InvalidConstraintError: For unknown constraint types, axes or nodes
    """
    for c in constraints:
        if not isinstance(c, (SeparationConstraint, AlignmentConstraint)):
            raise InvalidConstraintError(f"Unknown constraint {c!r}")
        c.validate(n)
