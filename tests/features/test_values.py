"""End-to-end tests for the Value feature through the mediator."""

from __future__ import annotations

import base64
import io
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from openpyxl import load_workbook
from pydantic import ValidationError

from crudforge.application.mediator import Mediator
from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.paging import PagedResult
from crudforge.domain.status import Status
from crudforge.features.values import (
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
    Value,
    ValueViewModel,
)
from crudforge.infrastructure.scope import RequestScope
from tests.conftest import add_values, value_count

JAN = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)


def _items(*names: str) -> list[BulkValueItem]:
    return [BulkValueItem(name=name, value_number=n) for n, name in enumerate(names)]


# ------------------------------------------------------------------
# Create
# ------------------------------------------------------------------


class TestCreateValue:
    def test_create(self, mediator: Mediator, scope: RequestScope) -> None:
        response = mediator.send(CreateValueCommand(name="Alpha", value_number=5))
        assert response.succeeded
        assert response.code == str(SuccessCode.SUCCESS_ON_CREATE.value)
        assert isinstance(response.data, uuid.UUID)
        stored = scope.reads(Value).get_by_id(response.data)
        assert stored.status_id == Status.UNVERIFIED
        assert stored.created_at is not None

    def test_duplicate_name(self, mediator: Mediator, scope: RequestScope) -> None:
        mediator.send(CreateValueCommand(name="Alpha", value_number=5))
        response = mediator.send(CreateValueCommand(name="Alpha", value_number=6))
        assert not response.succeeded
        assert response.code == "10101"
        assert response.message == "The record already exists."
        assert value_count(scope) == 1

    def test_soft_deleted_name_can_be_reused(
        self, mediator: Mediator, scope: RequestScope
    ) -> None:
        add_values(scope, "Alpha", is_deleted=True)
        assert mediator.send(CreateValueCommand(name="Alpha", value_number=1)).succeeded

    def test_name_too_short(self) -> None:
        with pytest.raises(ValidationError):
            CreateValueCommand(name="Al", value_number=1)

    def test_range_returns_ids(self, mediator: Mediator, scope: RequestScope) -> None:
        response = mediator.send(CreateRangeValueCommand(values=_items("a", "b", "c")))
        assert response.succeeded
        assert len(response.data) == 3
        assert value_count(scope) == 3

    def test_range_with_existing_name(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "b")
        response = mediator.send(CreateRangeValueCommand(values=_items("a", "b")))
        assert response.is_error(ErrorCode.EXIST_ON_CREATE)
        assert value_count(scope) == 1

    def test_insert_bulk(self, mediator: Mediator, scope: RequestScope) -> None:
        names = [f"bulk-{n}" for n in range(25)]
        response = mediator.send(InsertBulkValueCommand(values=_items(*names)))
        assert response.succeeded
        assert response.data == 25
        assert scope.reads(Value).count(Value.status_id == Status.UNVERIFIED) == 25

    def test_bulk_requires_values(self) -> None:
        with pytest.raises(ValidationError):
            InsertBulkValueCommand(values=[])


# ------------------------------------------------------------------
# Update
# ------------------------------------------------------------------


class TestUpdateValue:
    def test_update(self, mediator: Mediator, scope: RequestScope) -> None:
        (value,) = add_values(scope, "Alpha")
        response = mediator.send(
            UpdateValueCommand(id=value.id, name="Alpha 2", value_number=99)
        )
        assert response.succeeded
        assert response.code == "20003"
        assert response.data == value.id
        stored = scope.reads(Value).get_by_id(value.id)
        assert (stored.name, stored.value_number) == ("Alpha 2", 99)
        assert stored.status_id == Status.VERIFIED
        assert stored.updated_at is not None

    def test_missing(self, mediator: Mediator, scope: RequestScope) -> None:
        response = mediator.send(
            UpdateValueCommand(id=uuid.uuid4(), name="Ghost", value_number=1)
        )
        assert response.code == "10103"
        assert value_count(scope) == 0

    def test_soft_deleted_is_not_updated(self, mediator: Mediator, scope: RequestScope) -> None:
        (value,) = add_values(scope, "Gone", is_deleted=True)
        response = mediator.send(UpdateValueCommand(id=value.id, name="Back", value_number=1))
        assert response.is_error(ErrorCode.NOT_EXIST_ON_UPDATE)

    def test_nil_id_rejected(self) -> None:
        with pytest.raises(ValidationError, match="id is required"):
            UpdateValueCommand(id=uuid.UUID(int=0), name="x", value_number=1)

    def test_update_bulk(self, mediator: Mediator, scope: RequestScope) -> None:
        values = add_values(scope, "a", "b", "c")
        items = [
            UpdateValueItem(id=v.id, name=v.name.upper(), value_number=100) for v in values[:2]
        ]
        response = mediator.send(UpdateBulkValueCommand(items=items))
        assert response.succeeded
        assert response.data == 2
        names = {v.name for v in scope.reads(Value).get(Value.value_number == 100)}
        assert names == {"A", "B"}

    def test_update_range(self, mediator: Mediator, scope: RequestScope) -> None:
        values = add_values(scope, "a", "b")
        items = [UpdateValueItem(id=v.id, name=f"{v.name}!", value_number=7) for v in values]
        response = mediator.send(UpdateRangeValueCommand(items=items))
        assert response.data == 2
        assert scope.reads(Value).count(Value.status_id == Status.VERIFIED) == 2

    def test_update_range_nothing_matched(self, mediator: Mediator) -> None:
        items = [UpdateValueItem(id=uuid.uuid4(), name="x", value_number=1)]
        response = mediator.send(UpdateRangeValueCommand(items=items))
        assert response.is_error(ErrorCode.NOT_EXIST_ON_UPDATE)


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


class TestGetById:
    def test_found(self, mediator: Mediator, scope: RequestScope) -> None:
        (value,) = add_values(scope, "Alpha", value_number=3)
        response = mediator.send(GetByIdValueQuery(id=value.id))
        assert response.code == "20001"
        view = response.data
        assert isinstance(view, ValueViewModel)
        assert (view.name, view.value_number) == ("Alpha", 3)
        assert view.status_name == "Unverified"

    def test_missing(self, mediator: Mediator) -> None:
        response = mediator.send(GetByIdValueQuery(id=uuid.uuid4()))
        assert response.is_error(ErrorCode.FAIL_ON_GET)


class TestGetList:
    @pytest.fixture(autouse=True)
    def _seed(self, scope: RequestScope) -> None:
        add_values(scope, *(f"Al-{n}" for n in range(15)))
        add_values(scope, "Bob", "Carl")
        add_values(scope, "Al-deleted", is_deleted=True)

    def test_first_page(self, mediator: Mediator) -> None:
        response = mediator.send(GetListValueQuery(name="Al", page=1, page_size=10))
        paged = response.data
        assert isinstance(paged, PagedResult)
        assert paged.total_count == 15
        assert len(paged.data) == 10
        assert paged.total_pages == 2
        assert paged.has_next_page
        assert not paged.has_previous_page

    def test_last_page(self, mediator: Mediator) -> None:
        paged = mediator.send(GetListValueQuery(name="Al", page=2, page_size=10)).data
        assert len(paged.data) == 5
        assert not paged.has_next_page

    def test_newest_first(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "Zed", created_at=datetime.now(UTC) + timedelta(days=1))
        paged = mediator.send(GetListValueQuery()).data
        assert paged.data[0].name == "Zed"

    def test_status_filter(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "Vera", status_id=int(Status.VERIFIED))
        paged = mediator.send(GetListValueQuery(status_id=int(Status.VERIFIED))).data
        assert [v.name for v in paged.data] == ["Vera"]

    def test_created_window(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "January", created_at=JAN)
        query = GetListValueQuery(
            created_from=JAN - timedelta(days=1), created_to=JAN + timedelta(days=1)
        )
        assert [v.name for v in mediator.send(query).data.data] == ["January"]

    def test_window_must_be_ordered(self) -> None:
        with pytest.raises(ValidationError):
            GetListValueQuery(created_from=JAN, created_to=JAN - timedelta(days=1))

    def test_page_size_bounds(self) -> None:
        with pytest.raises(ValidationError):
            GetListValueQuery(page_size=101)
        with pytest.raises(ValidationError):
            GetListValueQuery(page=0)

    def test_get_all(self, mediator: Mediator) -> None:
        response = mediator.send(GetAllValuesQuery())
        assert len(response.data) == 17

    def test_name_filter_escapes_wildcards(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "100%")
        assert [v.name for v in mediator.send(GetAllValuesQuery(name="0%")).data] == ["100%"]


# ------------------------------------------------------------------
# Export
# ------------------------------------------------------------------


class TestExport:
    def test_empty(self, mediator: Mediator) -> None:
        response = mediator.send(ExportValuesCsvQuery())
        assert response.succeeded
        assert response.data == ""
        assert response.code == ""

    def test_csv(self, mediator: Mediator, scope: RequestScope) -> None:
        (value,) = add_values(scope, "Alpha", value_number=4)
        response = mediator.send(ExportValuesCsvQuery())
        lines = base64.b64decode(response.data).decode("utf-8").splitlines()
        assert lines[0] == '"Id","Name","Value Number","Created At","Updated At","Status Id"'
        assert lines[1].startswith(f'"{value.id}","Alpha","4",')
        assert lines[1].endswith('"","0"')

    def test_csv_window(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "Old", created_at=JAN)
        add_values(scope, "New")
        query = ExportValuesCsvQuery(created_to=JAN + timedelta(days=1))
        text = base64.b64decode(mediator.send(query).data).decode("utf-8")
        assert "Old" in text
        assert "New" not in text

    def test_excel(self, mediator: Mediator, scope: RequestScope) -> None:
        add_values(scope, "Alpha", "Beta")
        response = mediator.send(ExportValuesExcelQuery())
        workbook = load_workbook(io.BytesIO(base64.b64decode(response.data)))
        sheet = workbook["Values"]
        values = [cell for row in sheet.iter_rows(values_only=True) for cell in row]
        assert "Values Export" in values
        assert "Total Rows" in values
        assert "Alpha" in values
