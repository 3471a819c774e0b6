"""Generic read and export handlers."""

from crudforge.application.queries.export import ExportCsvHandler, ExportExcelHandler
from crudforge.application.queries.get_by_id import GetByIdHandler
from crudforge.application.queries.get_list import GetListHandler, GetListPagedHandler

__all__ = [
    "ExportCsvHandler",
    "ExportExcelHandler",
    "GetByIdHandler",
    "GetListHandler",
    "GetListPagedHandler",
]
