"""Value feature: hook definitions and the handlers built from them.

Each function below fills one step of a generic handler; the ``*_HOOKS``
structs gather them per message type and :func:`build_value_mediator`
binds everything to one request scope.
"""

from __future__ import annotations

import base64
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import and_

from crudforge.application.base import Handler, invalid_input
from crudforge.application.commands import (
    CreateBulkHandler,
    CreateHandler,
    CreateRangeHandler,
    UpdateBulkHandler,
    UpdateHandler,
    UpdateRangeHandler,
)
from crudforge.application.hooks import (
    CreateHooks,
    CreateManyHooks,
    ExportHooks,
    GetByIdHooks,
    ListHooks,
    UpdateHooks,
    UpdateManyHooks,
)
from crudforge.application.mediator import Mediator
from crudforge.application.queries import (
    ExportCsvHandler,
    ExportExcelHandler,
    GetByIdHandler,
    GetListHandler,
    GetListPagedHandler,
)
from crudforge.cancellation import CancellationToken
from crudforge.domain.bulk import BulkResult
from crudforge.domain.response import Response
from crudforge.features.values.contracts import (
    BulkValueItem,
    CreateRangeValueCommand,
    CreateValueCommand,
    ExportValuesCsvQuery,
    ExportValuesExcelQuery,
    GetAllValuesQuery,
    GetByIdValueQuery,
    GetListValueQuery,
    InsertBulkValueCommand,
    UpdateBulkValueCommand,
    UpdateRangeValueCommand,
    UpdateValueCommand,
    ValueViewModel,
)
from crudforge.features.values.entity import Value
from crudforge.infrastructure.database.base import utc_now
from crudforge.infrastructure.repositories.contracts import Predicate, Projection, order_by
from crudforge.infrastructure.scope import RequestScope

EXPORT_HEADERS = ("Id", "Name", "Value Number", "Created At", "Updated At", "Status Id")

VIEW = Projection(
    (
        Value.id,
        Value.name,
        Value.value_number,
        Value.created_at,
        Value.updated_at,
        Value.status_id,
    ),
    ValueViewModel.from_row,
)

_NEWEST_FIRST = order_by(Value.created_at.desc())


def _as_utc(moment: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _live(*clauses: Any) -> Predicate:
    return and_(Value.is_deleted.is_(False), *clauses)


def _created_between(created_from: datetime | None, created_to: datetime | None) -> list[Any]:
    clauses: list[Any] = []
    start, end = _as_utc(created_from), _as_utc(created_to)
    if start is not None:
        clauses.append(Value.created_at >= start)
    if end is not None:
        clauses.append(Value.created_at <= end)
    return clauses


def to_view(value: Value) -> ValueViewModel:
    return ValueViewModel.from_row(
        value.id,
        value.name,
        value.value_number,
        value.created_at,
        value.updated_at,
        value.status_id,
    )


def _new_value(item: CreateValueCommand | BulkValueItem) -> Value:
    return Value(
        id=uuid.uuid4(),
        name=item.name,
        value_number=item.value_number,
        created_at=utc_now(),
    )


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


def _merge_items(
    command: UpdateBulkValueCommand | UpdateRangeValueCommand, rows: list[Value]
) -> list[Value]:
    items = {item.id: item for item in command.items}
    now = utc_now()
    for row in rows:
        item = items[row.id]
        row.name = item.name
        row.value_number = item.value_number
        row.updated_at = now
    return rows


def _merge_one(command: UpdateValueCommand, row: Value) -> Value:
    row.name = command.name
    row.value_number = command.value_number
    row.updated_at = utc_now()
    return row


CREATE_HOOKS: CreateHooks[CreateValueCommand, Value, uuid.UUID] = CreateHooks(
    to_entity=_new_value,
    to_response=lambda value: value.id,
    exists=lambda command: _live(Value.name == command.name),
)

INSERT_BULK_HOOKS: CreateManyHooks[InsertBulkValueCommand, Value, int] = CreateManyHooks(
    to_entities=lambda command: [_new_value(item) for item in command.values],
    to_response=lambda result: result.successful_inserts,
    exists=lambda command: _live(Value.name.in_([item.name for item in command.values])),
    key_selector=Value.id,
)

CREATE_RANGE_HOOKS: CreateManyHooks[CreateRangeValueCommand, Value, list[uuid.UUID]] = (
    CreateManyHooks(
        to_entities=lambda command: [_new_value(item) for item in command.values],
        to_response=lambda values: [value.id for value in values],
        exists=lambda command: _live(Value.name.in_([item.name for item in command.values])),
    )
)

UPDATE_HOOKS: UpdateHooks[UpdateValueCommand, Value, uuid.UUID] = UpdateHooks(
    find=lambda command: _live(Value.id == command.id),
    to_entity=_merge_one,
    to_response=lambda value: value.id,
)


def _find_items(command: UpdateBulkValueCommand | UpdateRangeValueCommand) -> Predicate:
    return _live(Value.id.in_([item.id for item in command.items]))


def _updated_records(result: BulkResult) -> int:
    return result.updated_records


UPDATE_BULK_HOOKS: UpdateManyHooks[UpdateBulkValueCommand, Value, int] = UpdateManyHooks(
    find=_find_items,
    to_entities=_merge_items,
    to_response=_updated_records,
    key_selector=Value.id,
)

UPDATE_RANGE_HOOKS: UpdateManyHooks[UpdateRangeValueCommand, Value, int] = UpdateManyHooks(
    find=_find_items,
    to_entities=_merge_items,
    to_response=len,
)

# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


def _list_filter(query: GetListValueQuery | GetAllValuesQuery) -> Predicate:
    clauses: list[Any] = []
    if query.name:
        clauses.append(Value.name.contains(query.name, autoescape=True))
    if query.status_id is not None:
        clauses.append(Value.status_id == query.status_id)
    if isinstance(query, GetListValueQuery):
        clauses.extend(_created_between(query.created_from, query.created_to))
    return _live(*clauses)


GET_BY_ID_HOOKS: GetByIdHooks[GetByIdValueQuery, Value, ValueViewModel] = GetByIdHooks(
    find=lambda query: _live(Value.id == query.id),
    to_view=to_view,
    selector=VIEW,
)

LIST_HOOKS: ListHooks[GetListValueQuery, Value, ValueViewModel] = ListHooks(
    predicate=_list_filter,
    order_by=lambda query: _NEWEST_FIRST,
    to_view=to_view,
    selector=VIEW,
)

ALL_HOOKS: ListHooks[GetAllValuesQuery, Value, ValueViewModel] = ListHooks(
    predicate=_list_filter,
    order_by=lambda query: _NEWEST_FIRST,
    to_view=to_view,
)


def _export_row(value: Value) -> Sequence[Any]:
    return (
        value.id,
        value.name,
        value.value_number,
        value.created_at,
        value.updated_at,
        value.status_id,
    )


def _export_filter(query: ExportValuesCsvQuery | ExportValuesExcelQuery) -> Predicate:
    return _live(*_created_between(query.created_from, query.created_to))


def _export_summary(query: ExportValuesExcelQuery, values: list[Value]) -> list[tuple[str, Any]]:
    return [("Total Rows", len(values))]


CSV_EXPORT_HOOKS: ExportHooks[ExportValuesCsvQuery, Value] = ExportHooks(
    columns=_export_row,
    headers=EXPORT_HEADERS,
    predicate=_export_filter,
    order_by=lambda query: _NEWEST_FIRST,
)

EXCEL_EXPORT_HOOKS: ExportHooks[ExportValuesExcelQuery, Value] = ExportHooks(
    columns=_export_row,
    headers=EXPORT_HEADERS,
    predicate=_export_filter,
    order_by=lambda query: _NEWEST_FIRST,
    title="Values Export",
    sheet_title="Values",
    summary=_export_summary,
)


class EncodedExportHandler[Q](Handler[Q, str]):
    """Wrap an export buffer for callers: empty string or base64 text."""

    def __init__(self, export: ExportCsvHandler[Q, Value] | ExportExcelHandler[Q, Value]) -> None:
        self._export = export

    def _handle(self, query: Q | None, cancel: CancellationToken | None) -> Response[Any]:
        if query is None:
            return invalid_input()
        buffer = self._export.handle(query, cancel=cancel)
        if buffer is None:
            return Response.success("")
        return Response.success(base64.b64encode(buffer).decode("ascii"))


# ------------------------------------------------------------------
# Wiring
# ------------------------------------------------------------------


def build_value_mediator(scope: RequestScope, mediator: Mediator | None = None) -> Mediator:
    """Register every Value command and query against *scope*'s repositories."""
    mediator = mediator or Mediator()
    reads = scope.reads(Value)
    writes = scope.writes(Value)
    bulk = scope.bulk(Value)

    mediator.register(CreateValueCommand, CreateHandler(CREATE_HOOKS, reads, writes))
    mediator.register(
        InsertBulkValueCommand, CreateBulkHandler(INSERT_BULK_HOOKS, reads, bulk)
    )
    mediator.register(
        CreateRangeValueCommand, CreateRangeHandler(CREATE_RANGE_HOOKS, reads, writes)
    )
    mediator.register(UpdateValueCommand, UpdateHandler(UPDATE_HOOKS, reads, writes))
    mediator.register(
        UpdateBulkValueCommand, UpdateBulkHandler(UPDATE_BULK_HOOKS, reads, bulk)
    )
    mediator.register(
        UpdateRangeValueCommand, UpdateRangeHandler(UPDATE_RANGE_HOOKS, reads, writes)
    )

    mediator.register(GetByIdValueQuery, GetByIdHandler(GET_BY_ID_HOOKS, reads))
    mediator.register(GetListValueQuery, GetListPagedHandler(LIST_HOOKS, reads))
    mediator.register(GetAllValuesQuery, GetListHandler(ALL_HOOKS, reads))
    mediator.register(
        ExportValuesCsvQuery,
        EncodedExportHandler(ExportCsvHandler(CSV_EXPORT_HOOKS, reads)),
    )
    mediator.register(
        ExportValuesExcelQuery,
        EncodedExportHandler(ExportExcelHandler(EXCEL_EXPORT_HOOKS, reads)),
    )
    return mediator
