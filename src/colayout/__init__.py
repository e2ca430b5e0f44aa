"""
colayout: constrained graph layout

Stress-majorisation layout with separation, alignment, flow, non-overlap and
group containment constraints, power graph construction and
obstacle-avoiding edge routing.
"""

__version__ = "0.1.0"

from .config import FlowSpec, LayoutConfig, LinkLengthScheme
from .constraints import AlignmentConstraint, AlignmentSpecification, SeparationConstraint
from .descent import Descent
from .errors import (
    InfeasibleConstraintsError,
    InvalidConfigError,
    InvalidConstraintError,
    InvalidDistanceMatrixError,
    InvalidGroupError,
    InvalidLinkError,
    InvalidNodeError,
    LayoutError,
    RoutingError,
    ValidationError,
)
from .geom import Point
from .graph import Group, Link, Node
from .layout import Layout, LayoutEvent, LayoutObserver, LayoutPhase, LayoutStatus
from .powergraph import PowerEdge, PowerGraph, get_groups
from .rectangle import Rectangle, remove_overlaps
from .router import VisibilityGraph
from .vpsc import Constraint, Solver, Variable, remove_overlap_in_one_dimension

__all__ = [
    'AlignmentConstraint',
    'AlignmentSpecification',
    'Constraint',
    'Descent',
    'FlowSpec',
    'Group',
    'InfeasibleConstraintsError',
    'InvalidConfigError',
    'InvalidConstraintError',
    'InvalidDistanceMatrixError',
    'InvalidGroupError',
    'InvalidLinkError',
    'InvalidNodeError',
    'Layout',
    'LayoutConfig',
    'LayoutError',
    'LayoutEvent',
    'LayoutObserver',
    'LayoutPhase',
    'LayoutStatus',
    'Link',
    'LinkLengthScheme',
    'Node',
    'Point',
    'PowerEdge',
    'PowerGraph',
    'Rectangle',
    'RoutingError',
    'Solver',
    'SeparationConstraint',
    'ValidationError',
    'Variable',
    'VisibilityGraph',
    'get_groups',
    'remove_overlap_in_one_dimension',
    'remove_overlaps',
]
