"""Collaborator interfaces used by the refresh controller."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from .viewmodel import ViewModel


class FlowSource(Protocol):
    async def fetch_flows(self, namespace: Optional[str] = None) -> Any:  # pragma: no cover - protocol definition
        ...

    async def fetch_matrix(self, namespace: Optional[str] = None) -> Any:  # pragma: no cover - protocol definition
        ...

    def export_url(self, fmt: str, namespace: Optional[str] = None) -> str:  # pragma: no cover - protocol definition
        ...


class RenderListener(Protocol):
    def on_rendered(self, view_model: ViewModel) -> None:  # pragma: no cover - protocol definition
        ...

    def on_error(self, message: str) -> None:  # pragma: no cover - protocol definition
        ...


__all__ = ["FlowSource", "RenderListener"]
