"""Flat CSV rendering for exports.

Every value is wrapped in double quotes and lines end with ``\\n``.  Embedded
quotes are written as-is, not doubled.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any


def cell_text(value: Any) -> str:
    """Text form of one exported cell; ``None`` is empty."""
    if value is None:
        return ""
    if isinstance(value, datetime | date):
        return value.isoformat()
    return str(value)


def _line(cells: Iterable[Any]) -> str:
    return ",".join(f'"{cell_text(cell)}"' for cell in cells)


def render_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> bytes:
    """Header line followed by one line per row, UTF-8 encoded."""
    lines = [_line(headers), *(_line(row) for row in rows)]
    return "".join(f"{line}\n" for line in lines).encode("utf-8")
