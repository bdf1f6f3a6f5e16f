"""Deterministic circular placement of graph nodes."""

from __future__ import annotations

import numpy as np

from .graph import Graph


def circular_layout(graph: Graph, width: float, height: float) -> Graph:
    """Place nodes evenly on a circle centred in a ``width`` x ``height`` canvas.

    Node ``i`` of ``n`` (in insertion order) lands at angle ``2*pi*i/n`` on a
    circle of radius ``min(width, height) / 3``. A single node therefore sits
    at angle 0, to the right of the centre. The layout does not depend on
    previous frames, so identical graphs always get identical coordinates.
    """
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")

    count = len(graph.nodes)
    if count == 0:
        return graph

    center_x = width / 2
    center_y = height / 2
    radius = min(width, height) / 3

    angles = 2 * np.pi * np.arange(count) / count
    xs = center_x + radius * np.cos(angles)
    ys = center_y + radius * np.sin(angles)

    for node, x, y in zip(graph.nodes.values(), xs, ys):
        node.position = (float(x), float(y))

    return graph


__all__ = ["circular_layout"]
