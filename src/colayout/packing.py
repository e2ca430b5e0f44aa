"""
Packing of disconnected components.

The stress model places unconnected components at an arbitrary distance from
each other. After layout each component is treated as a rigid box and the
boxes are packed into shelves, with the shelf width chosen by golden-section
search so the overall aspect ratio comes close to the desired one.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence
import logging
import math

from .linklengths import LinkAccessor

logger = logging.getLogger(__name__)

PADDING = 10
GOLDEN_SECTION = (1 + math.sqrt(5)) / 2
FLOAT_EPSILON = 0.0001
MAX_ITERATIONS = 100


class Component:
    """
    A connected component and its box during packing.

    Attributes:
        array: The component's nodes
        width, height: Size of the bounding box of the nodes
        min_x, min_y: Top-left corner of that box before packing
        x, y: Packed top-left corner
    """

    def __init__(self, array: Optional[list[Any]] = None):
        self.array: list[Any] = array if array is not None else []
        self.width = 0.0
        self.height = 0.0
        self.min_x = 0.0
        self.min_y = 0.0
        self.x = 0.0
        self.y = 0.0
        self.bottom = 0.0
        self.space_left = 0.0


def separate_graphs(nodes: Sequence[Any], links: Sequence[Any], la: LinkAccessor = LinkAccessor()) -> list[Component]:
    """
    Split a graph into connected components.

    Args:
        nodes: Nodes, in index order
        links: Links whose endpoints la reads as node indices

    Returns:
        Components in order of their lowest node index
    """
    adjacency: list[list[int]] = [[] for _ in nodes]
    for l in links:
        u = la.get_source_index(l)
        v = la.get_target_index(l)
        adjacency[u].append(v)
        adjacency[v].append(u)

    marks = [False] * len(nodes)
    components = []
    for root in range(len(nodes)):
        if marks[root]:
            continue
        component = Component()
        marks[root] = True
        stack = [root]
        while stack:
            u = stack.pop()
            component.array.append(nodes[u])
            for v in adjacency[u]:
                if not marks[v]:
                    marks[v] = True
                    stack.append(v)
        component.array.sort(key=lambda v: v.index if v.index is not None else 0)
        components.append(component)
    return components


def _size(value: Optional[float], default: float) -> float:
    return default if value is None else value


def _calculate_bb(c: Component, node_size: float) -> None:
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for v in c.array:
        w = _size(v.width, node_size) / 2
        h = _size(v.height, node_size) / 2
        min_x = min(v.x - w, min_x)
        max_x = max(v.x + w, max_x)
        min_y = min(v.y - h, min_y)
        max_y = max(v.y + h, max_y)
    c.min_x, c.min_y = min_x, min_y
    c.width = max_x - min_x
    c.height = max_y - min_y


def _put_rect(
    rect: Component,
    max_width: float,
    line: list[Component],
    real_width: float,
    real_height: float,
    global_bottom: float,
) -> tuple[float, float, float]:
    """
    Place one box: beside the first box in the line with room for it, or in a new row.

    Returns:
        Updated (real_width, real_height, global_bottom)
    """
    parent = None
    for item in line:
        fits_height = item.space_left >= rect.height
        fits_width = item.x + item.width + rect.width + PADDING - max_width <= FLOAT_EPSILON
        if fits_height and fits_width:
            parent = item
            break

    line.append(rect)
    if parent is not None:
        rect.x = parent.x + parent.width + PADDING
        rect.y = parent.bottom
        rect.space_left = rect.height
        rect.bottom = rect.y
        parent.space_left -= rect.height + PADDING
        parent.bottom += rect.height + PADDING
    else:
        rect.y = global_bottom
        global_bottom += rect.height + PADDING
        rect.x = 0.0
        rect.bottom = rect.y
        rect.space_left = rect.height

    if rect.y + rect.height - real_height > -FLOAT_EPSILON:
        real_height = rect.y + rect.height
    if rect.x + rect.width - real_width > -FLOAT_EPSILON:
        real_width = rect.x + rect.width
    return real_width, real_height, global_bottom


def _step(components: list[Component], max_width: float, desired_ratio: float) -> tuple[float, float, float]:
    """
    Pack all boxes into shelves of the given width.

    Returns:
        (real_width, real_height, |aspect ratio - desired_ratio|)
    """
    line: list[Component] = []
    real_width = real_height = global_bottom = 0.0
    for c in components:
        real_width, real_height, global_bottom = _put_rect(
            c, max_width, line, real_width, real_height, global_bottom
        )
    ratio = real_width / real_height if real_height > 0 else math.inf
    return real_width, real_height, abs(ratio - desired_ratio)


def _pack(components: list[Component], desired_ratio: float) -> tuple[float, float]:
    """Golden-section search over the shelf width, then pack with the best one."""
    components.sort(key=lambda c: c.height, reverse=True)
    min_width = min(c.width for c in components)
    left = min_width
    right = sum(c.width + PADDING for c in components)

    best_f = math.inf
    best = right
    x1 = right - (right - left) / GOLDEN_SECTION
    x2 = left + (right - left) / GOLDEN_SECTION
    f_x1 = _step(components, x1, desired_ratio)[2]
    f_x2 = _step(components, x2, desired_ratio)[2]
    flag = -1
    dx = df = math.inf
    iterations = 0

    while (dx > min_width or df > FLOAT_EPSILON) and iterations < MAX_ITERATIONS:
        if flag != 1:
            x1 = right - (right - left) / GOLDEN_SECTION
            f_x1 = _step(components, x1, desired_ratio)[2]
        if flag != 0:
            x2 = left + (right - left) / GOLDEN_SECTION
            f_x2 = _step(components, x2, desired_ratio)[2]

        dx = abs(x1 - x2)
        df = abs(f_x1 - f_x2)
        if f_x1 < best_f:
            best_f, best = f_x1, x1
        if f_x2 < best_f:
            best_f, best = f_x2, x2

        if f_x1 > f_x2:
            left = x1
            x1, f_x1 = x2, f_x2
            flag = 1
        else:
            right = x2
            x2, f_x2 = x1, f_x1
            flag = 0
        iterations += 1

    real_width, real_height, _ = _step(components, best, desired_ratio)
    logger.debug(
        "Packed %d components into %gx%g after %d iterations",
        len(components), real_width, real_height, iterations,
    )
    return real_width, real_height


def apply_packing(
    components: list[Component],
    w: float,
    h: float,
    node_size: float = 0.0,
    desired_ratio: float = 1.0,
    center_graph: bool = True,
) -> None:
    """
    Move the components (by moving their nodes) into a compact, non-overlapping arrangement.

    Args:
        components: Components from separate_graphs
        w, h: Canvas size
        node_size: Size used for nodes without width/height
        desired_ratio: Desired width/height ratio of the packing
        center_graph: Centre the packing on the canvas; otherwise its top-left
            corner stays at the top-left of the original layout
    """
    if not components:
        return
    for c in components:
        _calculate_bb(c, node_size)
    origin_x = min(c.min_x for c in components)
    origin_y = min(c.min_y for c in components)

    real_width, real_height = _pack(components, desired_ratio)

    if center_graph:
        origin_x = w / 2 - real_width / 2
        origin_y = h / 2 - real_height / 2
    for c in components:
        dx = origin_x + c.x - c.min_x
        dy = origin_y + c.y - c.min_y
        for v in c.array:
            v.x += dx
            v.y += dy
