"""
Exception hierarchy for colayout.

Setup problems (bad indices, malformed groups, bad configuration) raise a
ValidationError subclass before any caller data is touched. Constraint sets
that cannot be satisfied raise InfeasibleConstraintsError from the solver.
"""

from __future__ import annotations


class LayoutError(Exception):
    """Base exception for all layout errors."""

    pass


class ValidationError(LayoutError, ValueError):
    """Base exception for invalid layout input."""

    pass


class InvalidNodeError(ValidationError):
    """Raised when a node is malformed."""

    pass


class InvalidLinkError(ValidationError):
    """Raised when a link references nodes that do not exist."""

    pass


class InvalidGroupError(ValidationError):
    """Raised when groups reference invalid members or do not form a forest."""

    pass


class InvalidConstraintError(ValidationError):
    """Raised when a user constraint references an unknown node or axis."""

    pass


class InvalidConfigError(ValidationError):
    """Raised when a configuration value is out of range."""

    pass


class InvalidDistanceMatrixError(ValidationError):
    """Raised when a supplied distance matrix has the wrong shape."""

    pass


class InfeasibleConstraintsError(LayoutError):
    """
    Raised when the projection cannot satisfy a set of separation constraints.

    Attributes:
        constraint: The constraint that could not be satisfied
    """

    def __init__(self, message: str, constraint: object = None):
        super().__init__(message)
        self.constraint = constraint


class RoutingError(LayoutError):
    """Raised when edge routing is requested before the layout is ready."""

    pass
