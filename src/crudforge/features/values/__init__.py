"""The Value feature: a named number with the full command/query surface."""

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
    UpdateValueItem,
    ValueViewModel,
)
from crudforge.features.values.entity import Value
from crudforge.features.values.handlers import build_value_mediator

__all__ = [
    "BulkValueItem",
    "CreateRangeValueCommand",
    "CreateValueCommand",
    "ExportValuesCsvQuery",
    "ExportValuesExcelQuery",
    "GetAllValuesQuery",
    "GetByIdValueQuery",
    "GetListValueQuery",
    "InsertBulkValueCommand",
    "UpdateBulkValueCommand",
    "UpdateRangeValueCommand",
    "UpdateValueCommand",
    "UpdateValueItem",
    "Value",
    "ValueViewModel",
    "build_value_mediator",
]
