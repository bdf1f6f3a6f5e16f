"""Normalized flow records and tolerant parsing of the flows payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, List, Mapping, Optional, Tuple

from .errors import ShapeError

logger = logging.getLogger(__name__)


@unique
class Verdict(Enum):
    FORWARDED = "FORWARDED"
    DROPPED = "DROPPED"
    AUDIT = "AUDIT"
    ERROR = "ERROR"
    REDIRECTED = "REDIRECTED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "Verdict":
        """Map a backend verdict label onto the enum, UNKNOWN when unrecognized."""
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN


@unique
class Protocol(Enum):
    TCP = "TCP"
    UDP = "UDP"
    ICMP = "ICMP"
    ICMPV6 = "ICMPV6"
    SCTP = "SCTP"
    HTTP = "HTTP"
    DNS = "DNS"
    KAFKA = "KAFKA"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "Protocol":
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or str(value) == "":
        raise ShapeError(f"missing required field '{key}'")
    return str(value)


def _non_negative_int(value: Any, default: int = 0) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if number >= 0 else default


def _labels(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class FlowRecord:
    """One observed connection between two workloads in a polling window."""

    source_namespace: str
    source_pod: str
    destination_namespace: str
    destination_pod: str
    protocol: Protocol = Protocol.UNKNOWN
    destination_port: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    verdict: Verdict = Verdict.UNKNOWN
    source_labels: Tuple[str, ...] = ()
    destination_labels: Tuple[str, ...] = ()
    last_seen: Optional[str] = None

    @property
    def source_key(self) -> str:
        return f"{self.source_namespace}/{self.source_pod}"

    @property
    def destination_key(self) -> str:
        return f"{self.destination_namespace}/{self.destination_pod}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlowRecord":
        """Build a record from one backend row.

        Workload identifiers are mandatory and raise :class:`ShapeError` when
        absent. Every other field falls back to a neutral default.
        """
        if not isinstance(data, Mapping):
            raise ShapeError(f"flow row must be an object, got {type(data).__name__}")

        return cls(
            source_namespace=_required_str(data, "source_namespace"),
            source_pod=_required_str(data, "source_pod"),
            destination_namespace=_required_str(data, "destination_namespace"),
            destination_pod=_required_str(data, "destination_pod"),
            protocol=Protocol.parse(data.get("protocol")),
            destination_port=_non_negative_int(data.get("destination_port")),
            bytes_sent=_non_negative_int(data.get("bytes_sent")),
            bytes_received=_non_negative_int(data.get("bytes_received")),
            verdict=Verdict.parse(data.get("verdict")),
            source_labels=_labels(data.get("source_labels")),
            destination_labels=_labels(data.get("destination_labels")),
            last_seen=data.get("last_seen"),
        )


@dataclass(frozen=True)
class FlowSnapshot:
    """Parsed flows response for a single polling window."""

    records: Tuple[FlowRecord, ...] = ()
    total_flows: int = 0
    namespaces: Tuple[str, ...] = ()
    timestamp: Optional[str] = None
    skipped_rows: int = field(default=0, compare=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "FlowSnapshot":
        """Parse the flows endpoint body, recovering from shape defects locally."""
        if not isinstance(payload, Mapping):
            logger.warning(
                "Flows payload is %s instead of an object; using an empty snapshot",
                type(payload).__name__,
            )
            return cls()

        rows = payload.get("flows")
        if not isinstance(rows, list):
            logger.warning("Flows payload has no 'flows' list; treating as empty")
            rows = []

        records: List[FlowRecord] = []
        skipped = 0
        for index, row in enumerate(rows):
            try:
                records.append(FlowRecord.from_dict(row))
            except ShapeError as exc:
                skipped += 1
                logger.warning("Skipping flow row %d: %s", index, exc)

        namespaces = payload.get("namespaces")
        if not isinstance(namespaces, list):
            logger.warning("Flows payload has no 'namespaces' list; assuming none")
            namespaces = []

        total = payload.get("total_flows")
        total_flows = _non_negative_int(total, default=len(records))

        return cls(
            records=tuple(records),
            total_flows=total_flows,
            namespaces=tuple(str(ns) for ns in namespaces),
            timestamp=payload.get("timestamp"),
            skipped_rows=skipped,
        )


__all__ = ["Verdict", "Protocol", "FlowRecord", "FlowSnapshot"]
