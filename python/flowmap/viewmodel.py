"""View model handed to renderers after every successful refresh.

The emitter only composes already computed pieces. Edge stroke widths,
tooltips and truncated labels are pure functions of the view model, so a
renderer never has to re-derive them from raw records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .colors import legend
from .graph import Edge, Graph
from .matrix import MatrixEntry
from .records import FlowRecord, Verdict
from .stats import Stats
from .utils import format_bytes

_MAX_LABEL_LENGTH = 15
_TRUNCATED_LABEL_LENGTH = 12


@dataclass(frozen=True)
class ViewModel:
    graph: Graph
    matrix: Tuple[MatrixEntry, ...]
    stats: Stats
    legend: Tuple[Tuple[str, str], ...] = ()
    namespace_options: Tuple[str, ...] = ()
    selected_namespace: Optional[str] = None
    records: Tuple[FlowRecord, ...] = ()
    sequence: int = field(default=0, compare=False)


class ViewModelEmitter:
    """Composes graph, matrix and stats into a :class:`ViewModel`."""

    def emit(
        self,
        graph: Graph,
        matrix: Sequence[MatrixEntry],
        stats: Stats,
        *,
        namespace_options: Sequence[str] = (),
        selected_namespace: Optional[str] = None,
        records: Sequence[FlowRecord] = (),
        sequence: int = 0,
    ) -> ViewModel:
        return ViewModel(
            graph=graph,
            matrix=tuple(matrix),
            stats=stats,
            legend=tuple(legend(graph.namespaces())),
            namespace_options=tuple(namespace_options),
            selected_namespace=selected_namespace,
            records=tuple(records),
            sequence=sequence,
        )


def edge_stroke_width(byte_count: float) -> float:
    """Logarithmic edge weight, never thinner than 1."""
    if byte_count <= 0:
        return 1.0
    return max(1.0, math.log(byte_count / 100))


def edge_tooltip(edge: Edge) -> str:
    return (
        f"{edge.source} → {edge.target}\n"
        f"{edge.protocol.value}:{edge.port} ({format_bytes(edge.bytes)})"
    )


def node_label(pod: str) -> str:
    if len(pod) > _MAX_LABEL_LENGTH:
        return pod[:_TRUNCATED_LABEL_LENGTH] + "..."
    return pod


def verdict_style(verdict: Verdict) -> str:
    return "healthy" if verdict is Verdict.FORWARDED else "degraded"


def stat_cards(stats: Stats) -> List[Tuple[str, str]]:
    """Label/value pairs in the order the dashboard shows its stat cards."""
    return [
        ("Total Flows", str(stats.total_flows)),
        ("Total Traffic", format_bytes(stats.total_bytes)),
        ("Forwarded", str(stats.forwarded_count)),
        ("Dropped", str(stats.dropped_count)),
        ("Namespaces", str(stats.namespace_count)),
    ]


__all__ = [
    "ViewModel",
    "ViewModelEmitter",
    "edge_stroke_width",
    "edge_tooltip",
    "node_label",
    "verdict_style",
    "stat_cards",
]
