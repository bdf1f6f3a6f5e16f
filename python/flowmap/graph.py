"""Communication graph built from flow records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Dict, Iterable, List, Optional, Tuple

from .records import FlowRecord, Protocol, Verdict

logger = logging.getLogger(__name__)


@unique
class NodeRole(Enum):
    SOURCE = "source"
    DESTINATION = "destination"


@dataclass
class Node:
    id: str
    namespace: str
    pod: str
    role: NodeRole
    position: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    protocol: Protocol
    port: int
    bytes: int
    verdict: Verdict


@dataclass
class Graph:
    """Nodes keyed by ``namespace/pod`` in insertion order plus observed edges."""

    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)

    def add_node(self, node: Node) -> bool:
        """Insert ``node`` unless its id is already known; first insert wins."""
        if node.id in self.nodes:
            return False
        self.nodes[node.id] = node
        return True

    def add_edge(self, edge: Edge) -> bool:
        """Append ``edge`` if both endpoints exist, otherwise drop it."""
        if edge.source not in self.nodes or edge.target not in self.nodes:
            logger.debug("Dropping edge %s -> %s with unknown endpoint", edge.source, edge.target)
            return False
        self.edges.append(edge)
        return True

    def namespaces(self) -> List[str]:
        """Namespaces in order of first appearance among the nodes."""
        seen: Dict[str, None] = {}
        for node in self.nodes.values():
            seen.setdefault(node.namespace, None)
        return list(seen)

    def __len__(self) -> int:
        return len(self.nodes)


class GraphBuilder:
    """Converts flow records into a deduplicated node/edge graph."""

    def build(self, records: Iterable[FlowRecord]) -> Graph:
        graph = Graph()

        for record in records:
            source_id = record.source_key
            target_id = record.destination_key

            graph.add_node(
                Node(
                    id=source_id,
                    namespace=record.source_namespace,
                    pod=record.source_pod,
                    role=NodeRole.SOURCE,
                )
            )
            graph.add_node(
                Node(
                    id=target_id,
                    namespace=record.destination_namespace,
                    pod=record.destination_pod,
                    role=NodeRole.DESTINATION,
                )
            )

            # Parallel edges are kept so each observed record stays visible.
            graph.add_edge(
                Edge(
                    source=source_id,
                    target=target_id,
                    protocol=record.protocol,
                    port=record.destination_port,
                    bytes=record.bytes_sent,
                    verdict=record.verdict,
                )
            )

        logger.debug("Built graph with %d nodes and %d edges", len(graph.nodes), len(graph.edges))
        return graph


__all__ = ["NodeRole", "Node", "Edge", "Graph", "GraphBuilder"]
