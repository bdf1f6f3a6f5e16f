"""Model class backing the traffic matrix table view."""

from __future__ import annotations

from typing import List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt

from ..matrix import MatrixEntry
from ..utils import format_bytes
from ..viewmodel import verdict_style


class MatrixTableModel(QAbstractTableModel):
    """Qt table model holding the matrix rows of the latest view model."""

    headers = [
        "Source",
        "Destination",
        "Protocol",
        "Port",
        "Flows",
        "Bytes",
        "Verdict",
    ]

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._rows: List[MatrixEntry] = []

    # ------------------------------------------------------------------
    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802 - Qt API
        if parent.isValid():
            return 0
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:  # noqa: N802 - Qt API
        if parent.isValid():
            return 0
        return len(self.headers)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # noqa: N802 - Qt API
        if not index.isValid() or not 0 <= index.row() < len(self._rows):
            return None

        entry = self._rows[index.row()]
        column = index.column()

        if role == Qt.DisplayRole:
            if column == 0:
                return entry.source
            if column == 1:
                return entry.destination
            if column == 2:
                return entry.protocol.value
            if column == 3:
                return str(entry.port)
            if column == 4:
                return str(entry.flow_count)
            if column == 5:
                return format_bytes(entry.bytes_total)
            if column == 6:
                return entry.verdict.value

        if role == Qt.ToolTipRole and column == 6:
            return verdict_style(entry.verdict)

        if role == Qt.TextAlignmentRole:
            if 3 <= column <= 5:
                return int(Qt.AlignRight | Qt.AlignVCenter)
            return int(Qt.AlignLeft | Qt.AlignVCenter)

        return None

    def headerData(
        self,
        section: int,
        orientation: Qt.Orientation,
        role: int = Qt.DisplayRole,
    ):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Horizontal:
            if 0 <= section < len(self.headers):
                return self.headers[section]
        return None

    # ------------------------------------------------------------------
    def set_entries(self, entries: Sequence[MatrixEntry]) -> None:
        """Replace all rows; the matrix is rebuilt fresh every cycle."""
        self.beginResetModel()
        self._rows = list(entries)
        self.endResetModel()

    def clear(self) -> None:
        self.set_entries([])

    def row_at(self, index: int) -> Optional[MatrixEntry]:
        if 0 <= index < len(self._rows):
            return self._rows[index]
        return None


__all__ = ["MatrixTableModel"]
