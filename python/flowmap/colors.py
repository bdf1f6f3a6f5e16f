"""Namespace to display color mapping used for nodes and the legend."""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

NAMESPACE_COLORS: Dict[str, str] = {
    "kube-system": "#ff6b6b",
    "argocd": "#4ecdc4",
    "monitoring": "#45b7d1",
    "kusanagi": "#ff00ff",
    "default": "#96ceb4",
    "minio": "#ffeaa7",
    "n8n": "#dfe6e9",
    "paperless": "#74b9ff",
}
FALLBACK_COLOR = "#95a5a6"


def color_for(namespace: str) -> str:
    return NAMESPACE_COLORS.get(namespace, FALLBACK_COLOR)


def legend(namespaces: Iterable[str]) -> List[Tuple[str, str]]:
    """Return ``(namespace, color)`` pairs, deduplicated, in first-seen order."""
    entries: List[Tuple[str, str]] = []
    seen = set()
    for namespace in namespaces:
        if namespace in seen:
            continue
        seen.add(namespace)
        entries.append((namespace, color_for(namespace)))
    return entries


__all__ = ["NAMESPACE_COLORS", "FALLBACK_COLOR", "color_for", "legend"]
