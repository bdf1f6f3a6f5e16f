"""Scalar dashboard metrics computed from a flow snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .records import FlowRecord, Verdict


@dataclass(frozen=True)
class Stats:
    total_flows: int = 0
    total_bytes: int = 0
    forwarded_count: int = 0
    dropped_count: int = 0
    namespace_count: int = 0

    @property
    def other_count(self) -> int:
        """Flows whose verdict is neither forwarded nor dropped."""
        return self.total_flows - self.forwarded_count - self.dropped_count


def summarize(records: Iterable[FlowRecord], namespaces: Sequence[str]) -> Stats:
    """Reduce ``records`` into dashboard totals.

    ``namespace_count`` reflects the namespace list reported by the source,
    which may include namespaces without any current flows.
    """
    total_flows = 0
    total_bytes = 0
    forwarded = 0
    dropped = 0

    for record in records:
        total_flows += 1
        total_bytes += record.bytes_sent + record.bytes_received
        if record.verdict is Verdict.FORWARDED:
            forwarded += 1
        elif record.verdict is Verdict.DROPPED:
            dropped += 1

    return Stats(
        total_flows=total_flows,
        total_bytes=total_bytes,
        forwarded_count=forwarded,
        dropped_count=dropped,
        namespace_count=len(namespaces),
    )


__all__ = ["Stats", "summarize"]
