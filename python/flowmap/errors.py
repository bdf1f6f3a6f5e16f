"""Error taxonomy shared by flow sources and the refresh controller."""

from __future__ import annotations

from typing import Optional


class FlowMapError(RuntimeError):
    """Base class for failures surfaced to the dashboard."""


class TransportError(FlowMapError):
    """Raised when a backend endpoint cannot be reached."""


class ResponseError(FlowMapError):
    """Raised when a backend endpoint answers with an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShapeError(FlowMapError):
    """Raised when a payload row lacks fields that cannot be defaulted."""


__all__ = ["FlowMapError", "TransportError", "ResponseError", "ShapeError"]
