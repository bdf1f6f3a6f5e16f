"""Network flow aggregation and graph layout engine for a Kubernetes dashboard."""

from .client import FlowSourceClient
from .colors import FALLBACK_COLOR, NAMESPACE_COLORS, color_for, legend
from .config import DashboardConfig
from .controller import RefreshController, RefreshPhase, RefreshState
from .errors import FlowMapError, ResponseError, ShapeError, TransportError
from .export import SnapshotCSVWriter, build_export_url, export_snapshot
from .graph import Edge, Graph, GraphBuilder, Node, NodeRole
from .sequence import CycleSequence
from .layout import circular_layout
from .matrix import MatrixEntry, passthrough
from .records import FlowRecord, FlowSnapshot, Protocol, Verdict
from .sources import StaticFlowSource
from .stats import Stats, summarize
from .utils import format_bytes
from .viewmodel import (
    ViewModel,
    ViewModelEmitter,
    edge_stroke_width,
    edge_tooltip,
    node_label,
    stat_cards,
    verdict_style,
)

__all__ = [
    "FlowRecord",
    "FlowSnapshot",
    "Protocol",
    "Verdict",
    "Node",
    "NodeRole",
    "Edge",
    "Graph",
    "GraphBuilder",
    "circular_layout",
    "MatrixEntry",
    "passthrough",
    "Stats",
    "summarize",
    "NAMESPACE_COLORS",
    "FALLBACK_COLOR",
    "color_for",
    "legend",
    "ViewModel",
    "ViewModelEmitter",
    "edge_stroke_width",
    "edge_tooltip",
    "node_label",
    "verdict_style",
    "stat_cards",
    "RefreshController",
    "RefreshPhase",
    "RefreshState",
    "DashboardConfig",
    "FlowSourceClient",
    "StaticFlowSource",
    "CycleSequence",
    "SnapshotCSVWriter",
    "build_export_url",
    "export_snapshot",
    "format_bytes",
    "FlowMapError",
    "TransportError",
    "ResponseError",
    "ShapeError",
]
