"""CSV exports of flow snapshots and the export endpoint location."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Callable, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union
from urllib.parse import urlencode

from .matrix import MatrixEntry
from .records import FlowRecord
from .utils import FLOWS_CSV_SUFFIX, LINE_SEP, MATRIX_CSV_SUFFIX

T = TypeVar("T")

FLOWS_COLUMNS: Tuple[str, ...] = (
    "source_namespace",
    "source_pod",
    "destination_namespace",
    "destination_pod",
    "port",
    "protocol",
    "verdict",
    "bytes_sent",
    "bytes_received",
)
MATRIX_COLUMNS: Tuple[str, ...] = (
    "source",
    "destination",
    "protocol",
    "port",
    "flow_count",
    "bytes_total",
    "verdict",
)
FLOWS_HEADER = ",".join(FLOWS_COLUMNS)
MATRIX_HEADER = ",".join(MATRIX_COLUMNS)

EXPORT_FORMATS = ("json", "csv")


def build_export_url(endpoint: str, fmt: str = "json", namespace: Optional[str] = None) -> str:
    """Location of the backend export for ``fmt``, scoped to ``namespace`` if set."""
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unsupported export format: {fmt!r}")
    params = {"format": fmt}
    if namespace:
        params["namespace"] = namespace
    return f"{endpoint}?{urlencode(params)}"


def flow_row(record: FlowRecord) -> Tuple[object, ...]:
    return (
        record.source_namespace,
        record.source_pod,
        record.destination_namespace,
        record.destination_pod,
        record.destination_port,
        record.protocol.value,
        record.verdict.value,
        record.bytes_sent,
        record.bytes_received,
    )


def matrix_row(entry: MatrixEntry) -> Tuple[object, ...]:
    return (
        entry.source,
        entry.destination,
        entry.protocol.value,
        entry.port,
        entry.flow_count,
        entry.bytes_total,
        entry.verdict.value,
    )


class SnapshotCSVWriter(Generic[T]):
    """Appends one CSV row per snapshot item, across refresh cycles.

    The column header goes in only when the file is new or empty, so repeated
    cycles accumulate under a single header.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        columns: Sequence[str],
        to_row: Callable[[T], Sequence[object]],
    ) -> None:
        self.file_path = Path(file_path)
        self.columns = tuple(columns)
        self._to_row = to_row

    def _needs_header(self) -> bool:
        return not self.file_path.exists() or self.file_path.stat().st_size == 0

    def append(self, items: Iterable[T]) -> int:
        rows = [self._to_row(item) for item in items]
        if not rows:
            return 0

        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = self._needs_header()
        with self.file_path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.writer(handle, lineterminator=LINE_SEP)
            if needs_header:
                writer.writerow(self.columns)
            writer.writerows(rows)
        return len(rows)


def flows_writer(path: Union[str, Path]) -> "SnapshotCSVWriter[FlowRecord]":
    return SnapshotCSVWriter(path, FLOWS_COLUMNS, flow_row)


def matrix_writer(path: Union[str, Path]) -> "SnapshotCSVWriter[MatrixEntry]":
    return SnapshotCSVWriter(path, MATRIX_COLUMNS, matrix_row)


def export_snapshot(
    output_dir: Union[str, Path],
    prefix: str,
    records: Sequence[FlowRecord],
    matrix: Sequence[MatrixEntry],
) -> List[Path]:
    """Append one snapshot to ``<prefix>_Flows.csv`` and ``<prefix>_Matrix.csv``.

    Returns the files that received at least one row.
    """
    output = Path(output_dir)
    written: List[Path] = []

    for writer, items in (
        (flows_writer(output / f"{prefix}{FLOWS_CSV_SUFFIX}"), records),
        (matrix_writer(output / f"{prefix}{MATRIX_CSV_SUFFIX}"), matrix),
    ):
        if writer.append(items):
            written.append(writer.file_path)

    return written


__all__ = [
    "FLOWS_COLUMNS",
    "MATRIX_COLUMNS",
    "FLOWS_HEADER",
    "MATRIX_HEADER",
    "EXPORT_FORMATS",
    "build_export_url",
    "flow_row",
    "matrix_row",
    "SnapshotCSVWriter",
    "flows_writer",
    "matrix_writer",
    "export_snapshot",
]
