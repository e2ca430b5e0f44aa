"""
Layout configuration.

Every tunable of the layout lives on LayoutConfig. Layout.config returns the
current value and Layout.configure() produces an updated copy, so there is
one query and one update path per property.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Literal, Optional, Union
import math

from .errors import InvalidConfigError


Axis = Literal['x', 'y']
LinkNumericPropertyAccessor = Callable[[Any], float]


@dataclass(frozen=True)
class FlowSpec:
    """
    Directed flow along one axis.

    Attributes:
        axis: 'x' for left-to-right, 'y' for top-to-bottom
        min_separation: Gap required across every link, or a function of the link
    """

    axis: Axis = 'y'
    min_separation: Union[float, LinkNumericPropertyAccessor] = 0.0

    def __post_init__(self):
        if self.axis not in ('x', 'y'):
            raise InvalidConfigError(f"Flow axis must be 'x' or 'y', got {self.axis!r}")
        if not callable(self.min_separation) and not math.isfinite(self.min_separation):
            raise InvalidConfigError(
                f"Flow min_separation must be finite, got {self.min_separation}"
            )

    def separation(self, link: Any) -> float:
        """Minimum separation required for a link."""
        if callable(self.min_separation):
            return float(self.min_separation(link))
        return float(self.min_separation)


@dataclass(frozen=True)
class LinkLengthScheme:
    """
    Structure-aware ideal link lengths.

    Attributes:
        kind: 'symmetric_diff' or 'jaccard'
        ideal_length: Base length when source and target share no neighbours
        weight: Multiplier for the effect of the adjustment
    """

    kind: Literal['symmetric_diff', 'jaccard']
    ideal_length: float
    weight: float = 1.0

    def __post_init__(self):
        if self.kind not in ('symmetric_diff', 'jaccard'):
            raise InvalidConfigError(f"Unknown link length scheme {self.kind!r}")
        if not self.ideal_length > 0:
            raise InvalidConfigError(
                f"Ideal link length must be positive, got {self.ideal_length}"
            )


@dataclass(frozen=True)
class LayoutConfig:
    """
    All tunables of a Layout.

    Attributes:
        canvas_size: [width, height]; its midpoint seeds unpositioned nodes
        link_distance: Ideal link length, a number or a function of the link
        link_type: Link type tag for power graphs, a function of the link or a constant
        link_lengths: Optional structure-aware link length scheme
        avoid_overlaps: Forbid overlap of node bounding boxes
        handle_disconnected: Pack connected components after layout
        convergence_threshold: Relative stress change that ends a phase
        default_node_size: Node size used for packing when width/height are unset
        group_compactness: Attraction between the boundaries of each group
        flow: Optional directed flow constraints
    """

    canvas_size: tuple[float, float] = (1.0, 1.0)
    link_distance: Union[float, LinkNumericPropertyAccessor] = 20.0
    link_type: Optional[Union[int, Callable[[Any], int]]] = None
    link_lengths: Optional[LinkLengthScheme] = None
    avoid_overlaps: bool = False
    handle_disconnected: bool = True
    convergence_threshold: float = 0.01
    default_node_size: float = 10.0
    group_compactness: float = 1e-6
    flow: Optional[FlowSpec] = field(default=None)

    def __post_init__(self):
        if len(self.canvas_size) != 2:
            raise InvalidConfigError(
                f"Canvas size must have 2 elements [width, height], got {len(self.canvas_size)}"
            )
        object.__setattr__(self, 'canvas_size', tuple(float(v) for v in self.canvas_size))
        if not callable(self.link_distance):
            if not self.link_distance > 0 or not math.isfinite(self.link_distance):
                raise InvalidConfigError(
                    f"Link distance must be a positive number, got {self.link_distance}"
                )
        if not self.convergence_threshold > 0:
            raise InvalidConfigError(
                f"Convergence threshold must be positive, got {self.convergence_threshold}"
            )
        if self.default_node_size < 0:
            raise InvalidConfigError(
                f"Default node size must be non-negative, got {self.default_node_size}"
            )
        if self.group_compactness < 0:
            raise InvalidConfigError(
                f"Group compactness must be non-negative, got {self.group_compactness}"
            )

    def update(self, **changes: Any) -> LayoutConfig:
        """Return a copy with the given fields replaced."""
        try:
            return replace(self, **changes)
        except TypeError as e:
            raise InvalidConfigError(str(e)) from e
