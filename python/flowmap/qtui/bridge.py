"""Qt-aware bridge re-emitting refresh controller events as signals."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..viewmodel import ViewModel
from .matrix_model import MatrixTableModel

logger = logging.getLogger(__name__)


class QtRefreshBridge(QObject):
    """Render listener for :class:`~flowmap.controller.RefreshController`.

    Keeps the last successful view model so widgets can redraw from it while
    an error banner is shown.
    """

    rendered = Signal(object)
    error_occurred = Signal(str)
    error_cleared = Signal()

    def __init__(self, matrix_model: Optional[MatrixTableModel] = None, parent=None) -> None:
        super().__init__(parent)
        self.matrix_model = matrix_model
        self._last_view: Optional[ViewModel] = None
        self._error: Optional[str] = None

    # ------------------------------------------------------------------
    def on_rendered(self, view_model: ViewModel) -> None:
        self._last_view = view_model
        if self.matrix_model is not None:
            self.matrix_model.set_entries(view_model.matrix)
        if self._error is not None:
            self._error = None
            self.error_cleared.emit()
        self.rendered.emit(view_model)

    def on_error(self, message: str) -> None:
        logger.error(message)
        self._error = message
        self.error_occurred.emit(message)

    # ------------------------------------------------------------------
    def last_view(self) -> Optional[ViewModel]:
        return self._last_view

    def current_error(self) -> Optional[str]:
        return self._error


__all__ = ["QtRefreshBridge"]
