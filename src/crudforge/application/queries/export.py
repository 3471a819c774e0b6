"""Tabular export handlers.

These return raw buffers rather than a Response: ``None`` when nothing
matched or when anything failed (the failure is logged).  Feature code wraps
the buffer for its callers.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog

from crudforge.application.hooks import ExportHooks
from crudforge.cancellation import CancellationToken
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.output.csv_export import render_csv
from crudforge.output.excel_export import SheetSpec, render_workbook
from crudforge.telemetry import traced

log = structlog.get_logger(__name__)


class _ExportBase[Q, E]:
    def __init__(self, hooks: ExportHooks[Q, E], reads: ReadRepository[E]) -> None:
        self._hooks = hooks
        self._reads = reads

    @traced
    def handle(self, query: Q, *, cancel: CancellationToken | None = None) -> bytes | None:
        try:
            entities = self._load(query, cancel)
            if not entities:
                return None
            rows = [list(self._hooks.columns(entity)) for entity in entities]
            return self._render(query, entities, rows)
        except Exception:
            log.exception("export.failed", handler=type(self).__name__)
            return None

    def _load(self, query: Q, cancel: CancellationToken | None) -> list[E]:
        hooks = self._hooks
        predicate = hooks.predicate(query) if hooks.predicate is not None else None
        ordering = hooks.order_by(query) if hooks.order_by is not None else None
        return self._reads.get(predicate, ordering, hooks.include, page_size=-1, cancel=cancel)

    def _render(self, query: Q, entities: list[E], rows: list[list[Any]]) -> bytes:
        raise NotImplementedError


class ExportCsvHandler[Q, E](_ExportBase[Q, E]):
    def _render(self, query: Q, entities: list[E], rows: list[list[Any]]) -> bytes:
        return render_csv(self._hooks.headers, rows)


class ExportExcelHandler[Q, E](_ExportBase[Q, E]):
    def _render(self, query: Q, entities: list[E], rows: list[list[Any]]) -> bytes:
        hooks = self._hooks
        summary: Sequence[tuple[str, Any]] = ()
        if hooks.summary is not None:
            summary = hooks.summary(query, entities)
        return render_workbook(
            [
                SheetSpec(
                    headers=hooks.headers,
                    rows=rows,
                    title=hooks.title,
                    sheet_title=hooks.sheet_title,
                    summary=summary,
                )
            ]
        )
