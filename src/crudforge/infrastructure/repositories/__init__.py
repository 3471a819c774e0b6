"""Generic repositories over a request-scoped SQLAlchemy session."""

from crudforge.infrastructure.repositories.bulk import BulkRepository
from crudforge.infrastructure.repositories.contracts import (
    Include,
    KeySelector,
    OrderBy,
    Predicate,
    Projection,
    Selector,
    order_by,
)
from crudforge.infrastructure.repositories.extension import ExtensionRepository
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.infrastructure.repositories.write import WriteRepository

__all__ = [
    "BulkRepository",
    "ExtensionRepository",
    "Include",
    "KeySelector",
    "OrderBy",
    "Predicate",
    "Projection",
    "ReadRepository",
    "Selector",
    "WriteRepository",
    "order_by",
]
