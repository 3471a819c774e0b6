"""Generic create and update handlers."""

from crudforge.application.commands.create import (
    CreateBulkHandler,
    CreateHandler,
    CreateRangeHandler,
)
from crudforge.application.commands.update import (
    UpdateBulkHandler,
    UpdateHandler,
    UpdateRangeHandler,
)

__all__ = [
    "CreateBulkHandler",
    "CreateHandler",
    "CreateRangeHandler",
    "UpdateBulkHandler",
    "UpdateHandler",
    "UpdateRangeHandler",
]
