"""In-memory flow source serving the backend's demonstration data set."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .export import build_export_url

DEMO_NAMESPACES: Tuple[str, ...] = (
    "default",
    "kube-system",
    "argocd",
    "monitoring",
    "kusanagi",
    "n8n",
    "paperless",
    "minio",
)

# (src namespace, src pod, dst namespace, dst pod, port, protocol, bytes)
DEMO_FLOWS: Tuple[Tuple[str, str, str, str, int, str, int], ...] = (
    ("argocd", "argocd-server", "kusanagi", "kusanagi-app", 8080, "TCP", 1024),
    ("monitoring", "prometheus", "kusanagi", "kusanagi-app", 8080, "TCP", 2048),
    ("default", "nginx", "kube-system", "coredns", 53, "UDP", 256),
    ("n8n", "n8n-main", "minio", "minio-api", 9000, "TCP", 4096),
    ("paperless", "paperless-web", "monitoring", "grafana", 3000, "TCP", 512),
)

_DEMO_FLOW_COUNT = 100


class StaticFlowSource:
    """Serves fixed flow and matrix payloads shaped like the HTTP endpoints.

    A namespace filter keeps flows whose source or destination lives in that
    namespace. The namespace list is always reported in full.
    """

    def __init__(
        self,
        flows: Sequence[Tuple[str, str, str, str, int, str, int]] = DEMO_FLOWS,
        namespaces: Sequence[str] = DEMO_NAMESPACES,
        *,
        limit: int = 1000,
        export_endpoint: str = "/api/cilium/export",
    ) -> None:
        self._flows = tuple(flows)
        self._namespaces = list(namespaces)
        self._limit = limit
        self._export_endpoint = export_endpoint

    async def fetch_flows(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        flows: List[Dict[str, Any]] = []
        for src_ns, src_pod, dst_ns, dst_pod, port, proto, byte_count in self._matching(namespace):
            flows.append(
                {
                    "source_namespace": src_ns,
                    "source_pod": src_pod,
                    "source_labels": [f"app={src_pod}"],
                    "destination_namespace": dst_ns,
                    "destination_pod": dst_pod,
                    "destination_labels": [f"app={dst_pod}"],
                    "destination_port": port,
                    "protocol": proto,
                    "verdict": "FORWARDED",
                    "bytes_sent": byte_count,
                    "bytes_received": byte_count // 2,
                    "last_seen": now,
                }
            )
        flows = flows[: self._limit]
        return {
            "total_flows": len(flows),
            "flows": flows,
            "namespaces": list(self._namespaces),
            "timestamp": now,
        }

    async def fetch_matrix(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            {
                "source": f"{src_ns}/{src_pod}",
                "destination": f"{dst_ns}/{dst_pod}",
                "protocol": proto,
                "port": port,
                "flow_count": _DEMO_FLOW_COUNT,
                "bytes_total": byte_count * _DEMO_FLOW_COUNT,
                "verdict": "FORWARDED",
            }
            for src_ns, src_pod, dst_ns, dst_pod, port, proto, byte_count in self._matching(namespace)
        ]

    def export_url(self, fmt: str, namespace: Optional[str] = None) -> str:
        return build_export_url(self._export_endpoint, fmt, namespace)

    def _matching(self, namespace: Optional[str]):
        for flow in self._flows:
            if namespace is None or namespace in (flow[0], flow[2]):
                yield flow


__all__ = ["DEMO_NAMESPACES", "DEMO_FLOWS", "StaticFlowSource"]
