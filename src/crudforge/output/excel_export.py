"""Excel workbook rendering for exports (openpyxl).

Sheet layout, top to bottom:

1. Title band (optional): one row merged across every column.
2. Summary rows (optional): label half on green, value half on yellow.
3. Header row: bold, yellow, bordered, centered.
4. Data rows: text cells, bordered.

Column widths are sized to their longest value.
"""

from __future__ import annotations

import io
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from crudforge.output.csv_export import cell_text

TITLE_FILL = "FFFF00"
HEADER_FILL = "FFFF00"
SUMMARY_LABEL_FILL = "C6EFCE"
SUMMARY_VALUE_FILL = "FFEB9C"
MIN_COLUMN_WIDTH = 15.72
MAX_SHEET_TITLE = 31

_THIN = Side(style="thin")
_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
_CENTER = Alignment(horizontal="center", vertical="center")


@dataclass(frozen=True)
class SheetSpec:
    """Content and decoration of one worksheet."""

    headers: Sequence[str]
    rows: Sequence[Sequence[Any]]
    title: str | None = None
    sheet_title: str | None = None
    summary: Sequence[tuple[str, Any]] = field(default_factory=tuple)


def _fill(color: str) -> PatternFill:
    return PatternFill(fill_type="solid", start_color=color, end_color=color)


def _band(ws: Worksheet, row: int, first: int, last: int, value: str, color: str) -> None:
    """Write *value* into columns first..last of *row*, merged and filled."""
    for col in range(first, last + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = _fill(color)
        cell.border = _BORDER
        cell.alignment = _CENTER
    ws.cell(row=row, column=first, value=value)
    if last > first:
        ws.merge_cells(start_row=row, start_column=first, end_row=row, end_column=last)


def _write_sheet(ws: Worksheet, spec: SheetSpec) -> None:
    width = len(spec.headers)
    row = 1

    if spec.title:
        _band(ws, row, 1, width, spec.title, TITLE_FILL)
        ws.cell(row=row, column=1).font = Font(bold=True)
        row += 1

    split = max(width // 2, 1)
    for label, value in spec.summary:
        _band(ws, row, 1, split, cell_text(label), SUMMARY_LABEL_FILL)
        _band(ws, row, min(split + 1, width), width, cell_text(value), SUMMARY_VALUE_FILL)
        row += 1

    for col, header in enumerate(spec.headers, start=1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.font = Font(bold=True)
        cell.fill = _fill(HEADER_FILL)
        cell.border = _BORDER
        cell.alignment = _CENTER
    row += 1

    for data in spec.rows:
        for col, value in enumerate(data, start=1):
            cell = ws.cell(row=row, column=col, value=cell_text(value))
            cell.border = _BORDER
        row += 1

    _autosize(ws, spec)


def _autosize(ws: Worksheet, spec: SheetSpec) -> None:
    for index, header in enumerate(spec.headers):
        longest = max(
            [len(header), *(len(cell_text(r[index])) for r in spec.rows if index < len(r))]
        )
        ws.column_dimensions[get_column_letter(index + 1)].width = max(
            MIN_COLUMN_WIDTH, longest + 2
        )


def render_workbook(sheets: Sequence[SheetSpec]) -> bytes:
    """Render *sheets* into an ``.xlsx`` byte buffer."""
    workbook = Workbook()
    workbook.remove(workbook.active)
    for spec in sheets:
        title = (spec.sheet_title or uuid.uuid4().hex)[:MAX_SHEET_TITLE]
        _write_sheet(workbook.create_sheet(title=title), spec)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
