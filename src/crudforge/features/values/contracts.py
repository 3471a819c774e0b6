"""Commands, queries and the view model of the Value feature.

All are frozen pydantic models; constraint violations surface as
``pydantic.ValidationError`` when the message is constructed, before any
handler runs.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, field_validator, model_validator

from crudforge.domain.paging import PagedQuery
from crudforge.domain.status import Status, status_name


class _CreatedWindow(BaseModel):
    """Optional ``created_at`` window; ``created_from`` must not follow ``created_to``."""

    model_config = {"frozen": True}

    created_from: datetime | None = None
    created_to: datetime | None = None

    @model_validator(mode="after")
    def _window_is_ordered(self) -> Self:
        if self.created_from and self.created_to and self.created_from > self.created_to:
            raise ValueError("created_from must be less than or equal to created_to")
        return self


# --- Commands ---


class CreateValueCommand(BaseModel):
    model_config = {"frozen": True}

    name: str = Field(min_length=3, max_length=100)
    value_number: int


class BulkValueItem(BaseModel):
    model_config = {"frozen": True}

    name: str = Field(min_length=1, max_length=100)
    value_number: int


class InsertBulkValueCommand(BaseModel):
    model_config = {"frozen": True}

    values: list[BulkValueItem] = Field(min_length=1)


class CreateRangeValueCommand(BaseModel):
    model_config = {"frozen": True}

    values: list[BulkValueItem] = Field(min_length=1)


class UpdateValueCommand(BaseModel):
    model_config = {"frozen": True}

    id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    value_number: int
    status_id: int | None = None

    @field_validator("id")
    @classmethod
    def _id_not_nil(cls, value: uuid.UUID) -> uuid.UUID:
        if value.int == 0:
            raise ValueError("id is required")
        return value


class UpdateValueItem(BaseModel):
    model_config = {"frozen": True}

    id: uuid.UUID
    name: str = Field(min_length=1, max_length=100)
    value_number: int


class UpdateBulkValueCommand(BaseModel):
    model_config = {"frozen": True}

    items: list[UpdateValueItem] = Field(min_length=1)


class UpdateRangeValueCommand(BaseModel):
    model_config = {"frozen": True}

    items: list[UpdateValueItem] = Field(min_length=1)


# --- Queries ---


class GetByIdValueQuery(BaseModel):
    model_config = {"frozen": True}

    id: uuid.UUID


class GetListValueQuery(PagedQuery, _CreatedWindow):
    name: str | None = Field(default=None, max_length=100)
    status_id: int | None = None


class GetAllValuesQuery(BaseModel):
    model_config = {"frozen": True}

    name: str | None = Field(default=None, max_length=100)
    status_id: int | None = None


class ExportValuesCsvQuery(_CreatedWindow):
    pass


class ExportValuesExcelQuery(_CreatedWindow):
    pass


# --- View model ---


class ValueViewModel(BaseModel):
    model_config = {"frozen": True}

    id: uuid.UUID
    name: str
    value_number: int
    created_at: datetime
    updated_at: datetime | None = None
    status_id: int = int(Status.UNVERIFIED)
    status_name: str | None = None

    @classmethod
    def from_row(
        cls,
        id: uuid.UUID,
        name: str,
        value_number: int,
        created_at: datetime,
        updated_at: datetime | None,
        status_id: int,
    ) -> ValueViewModel:
        return cls(
            id=id,
            name=name,
            value_number=value_number,
            created_at=created_at,
            updated_at=updated_at,
            status_id=status_id,
            status_name=status_name(status_id),
        )
