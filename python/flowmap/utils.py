"""Small formatting helpers shared by the view model and exports."""

from __future__ import annotations

import os

LINE_SEP = os.linesep
FLOWS_CSV_SUFFIX = "_Flows.csv"
MATRIX_CSV_SUFFIX = "_Matrix.csv"

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(value: float) -> str:
    """Render a byte count with binary prefixes, e.g. ``1536 -> '1.5 KB'``."""
    if value <= 0:
        return "0 B"
    exponent = 0
    while value >= 1024 and exponent < len(_BYTE_UNITS) - 1:
        value /= 1024
        exponent += 1
    return f"{round(value, 2):g} {_BYTE_UNITS[exponent]}"


__all__ = ["LINE_SEP", "FLOWS_CSV_SUFFIX", "MATRIX_CSV_SUFFIX", "format_bytes"]
