"""Shape validation for the pre-aggregated traffic matrix.

The matrix endpoint already reduces flows per (source, destination,
protocol, port, verdict) tuple. Nothing is recomputed here: rows are
validated, missing optional fields get defaults, and the result is
handed through in the order the backend sent it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping

from .errors import ShapeError
from .records import Protocol, Verdict

logger = logging.getLogger(__name__)


def _count(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(number, 0)


@dataclass(frozen=True)
class MatrixEntry:
    source: str
    destination: str
    protocol: Protocol = Protocol.UNKNOWN
    port: int = 0
    flow_count: int = 0
    bytes_total: int = 0
    verdict: Verdict = Verdict.UNKNOWN

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MatrixEntry":
        if not isinstance(data, Mapping):
            raise ShapeError(f"matrix row must be an object, got {type(data).__name__}")
        source = data.get("source")
        destination = data.get("destination")
        if not source or not destination:
            raise ShapeError("matrix row is missing 'source' or 'destination'")

        return cls(
            source=str(source),
            destination=str(destination),
            protocol=Protocol.parse(data.get("protocol")),
            port=_count(data.get("port")),
            flow_count=_count(data.get("flow_count")),
            bytes_total=_count(data.get("bytes_total")),
            verdict=Verdict.parse(data.get("verdict")),
        )


def passthrough(rows: Any) -> List[MatrixEntry]:
    """Validate matrix rows and fill defaults without re-aggregating them."""
    if not isinstance(rows, list):
        logger.warning("Matrix payload is %s instead of a list; using an empty matrix", type(rows).__name__)
        return []

    entries: List[MatrixEntry] = []
    for index, row in enumerate(rows):
        try:
            entries.append(MatrixEntry.from_dict(row))
        except ShapeError as exc:
            logger.warning("Skipping matrix row %d: %s", index, exc)
    return entries


__all__ = ["MatrixEntry", "passthrough"]
