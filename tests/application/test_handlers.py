"""Tests for the generic command and query handlers."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import pytest

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
    default_create_options,
)
from crudforge.application.queries import (
    ExportCsvHandler,
    ExportExcelHandler,
    GetByIdHandler,
    GetListHandler,
    GetListPagedHandler,
)
from crudforge.cancellation import CancellationToken
from crudforge.config.models import RepositoryConfig
from crudforge.domain.bulk import ConflictStrategy
from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.response import Response
from crudforge.domain.status import Status
from crudforge.features.values import Value
from crudforge.infrastructure.repositories.contracts import Projection, order_by
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.infrastructure.scope import RequestScope
from tests.conftest import add_values, value_count
from tests.entities import Tag


@dataclass(frozen=True)
class NewValue:
    name: str
    number: int = 0


@dataclass(frozen=True)
class Rename:
    name: str
    new_name: str


@dataclass(frozen=True)
class Lookup:
    name: str


@dataclass(frozen=True)
class Page:
    page: int = 1
    page_size: int = 10
    prefix: str = ""


def _new(command: NewValue) -> Value:
    return Value(id=uuid.uuid4(), name=command.name, value_number=command.number)


def _create_hooks(**overrides: object) -> CreateHooks[NewValue, Value, uuid.UUID]:
    fields: dict[str, object] = {
        "to_entity": _new,
        "to_response": lambda v: v.id,
        "exists": lambda c: Value.name == c.name,
    }
    fields.update(overrides)
    return CreateHooks(**fields)  # type: ignore[arg-type]


def _many_hooks(**overrides: object) -> CreateManyHooks[list[NewValue], Value, object]:
    fields: dict[str, object] = {
        "to_entities": lambda cs: [_new(c) for c in cs],
        "to_response": lambda result: result,
    }
    fields.update(overrides)
    return CreateManyHooks(**fields)  # type: ignore[arg-type]


# ------------------------------------------------------------------
# Create
# ------------------------------------------------------------------


class TestCreateHandler:
    @pytest.fixture
    def handler(self, scope: RequestScope) -> CreateHandler[NewValue, Value, uuid.UUID]:
        return CreateHandler(_create_hooks(), scope.reads(Value), scope.writes(Value))

    def test_creates(self, scope: RequestScope, handler: CreateHandler) -> None:
        response = handler.handle(NewValue("Alpha", 5))
        assert response.succeeded
        assert response.code == str(SuccessCode.SUCCESS_ON_CREATE.value)
        stored = scope.reads(Value).get_by_id(response.data)
        assert stored.status_id == Status.UNVERIFIED

    def test_duplicate(self, scope: RequestScope, handler: CreateHandler) -> None:
        handler.handle(NewValue("Alpha"))
        response = handler.handle(NewValue("Alpha"))
        assert response.is_error(ErrorCode.EXIST_ON_CREATE)
        assert value_count(scope) == 1

    def test_none_command(self, handler: CreateHandler) -> None:
        assert handler.handle(None).is_error(ErrorCode.INVALID_INPUT_DATA)

    def test_unmappable(self, scope: RequestScope) -> None:
        handler = CreateHandler(
            _create_hooks(to_entity=lambda c: None), scope.reads(Value), scope.writes(Value)
        )
        assert handler.handle(NewValue("x")).is_error(ErrorCode.INVALID_INPUT_DATA)

    def test_exists_checked_before_mapping(self, scope: RequestScope) -> None:
        add_values(scope, "Alpha")
        mapped: list[NewValue] = []

        def to_entity(command: NewValue) -> Value:
            mapped.append(command)
            return _new(command)

        handler = CreateHandler(
            _create_hooks(to_entity=to_entity), scope.reads(Value), scope.writes(Value)
        )
        handler.handle(NewValue("Alpha"))
        assert mapped == []

    def test_validator_rejects(self, scope: RequestScope) -> None:
        rejected = Response.fail(ErrorCode.OUT_OF_RANGE)
        handler = CreateHandler(
            _create_hooks(validate=lambda v: rejected if v.value_number < 0 else None),
            scope.reads(Value),
            scope.writes(Value),
        )
        assert handler.handle(NewValue("neg", -1)) is rejected
        assert handler.handle(NewValue("pos", 1)).succeeded
        assert value_count(scope) == 1

    def test_exception_becomes_system_error(self, scope: RequestScope) -> None:
        def boom(command: NewValue) -> Value:
            raise RuntimeError("mapping bug")

        handler = CreateHandler(
            _create_hooks(to_entity=boom), scope.reads(Value), scope.writes(Value)
        )
        response = handler.handle(NewValue("x"))
        assert response.is_error(ErrorCode.SYSTEM_ERROR)

    def test_cancelled_becomes_system_error(self, handler: CreateHandler) -> None:
        token = CancellationToken()
        token.cancel()
        assert handler.handle(NewValue("x"), cancel=token).is_error(ErrorCode.SYSTEM_ERROR)

    def test_store_rejection_leaves_scope_usable(self, scope: RequestScope) -> None:
        hooks = CreateHooks(to_entity=lambda c: Tag(code=c.name), to_response=lambda t: t.id)
        handler = CreateHandler(hooks, scope.reads(Tag), scope.writes(Tag))
        assert handler.handle(NewValue("a")).succeeded
        assert handler.handle(NewValue("a")).is_error(ErrorCode.FAIL_ON_CREATE)
        assert handler.handle(NewValue("b")).succeeded
        assert scope.reads(Tag).count() == 2

    def test_failed_flush_is_rolled_back(self, scope: RequestScope) -> None:
        scope.writes(Tag).create(Tag(code="a"))

        def flush_duplicate(command: NewValue) -> Tag:
            scope.session.add(Tag(code="a"))
            scope.session.flush()
            return Tag(code=command.name)

        hooks = CreateHooks(to_entity=flush_duplicate, to_response=lambda t: t.id)
        broken = CreateHandler(hooks, scope.reads(Tag), scope.writes(Tag))
        assert broken.handle(NewValue("x")).is_error(ErrorCode.SYSTEM_ERROR)

        hooks = CreateHooks(to_entity=lambda c: Tag(code=c.name), to_response=lambda t: t.id)
        handler = CreateHandler(hooks, scope.reads(Tag), scope.writes(Tag))
        assert handler.handle(NewValue("b")).succeeded
        assert scope.reads(Tag).count() == 2


class TestCreateRangeHandler:
    def test_creates_all(self, scope: RequestScope) -> None:
        handler = CreateRangeHandler(
            _many_hooks(to_response=lambda vs: len(vs), batch_size=2),
            scope.reads(Value),
            scope.writes(Value),
        )
        response = handler.handle([NewValue("a"), NewValue("b"), NewValue("c")])
        assert response.data == 3
        assert value_count(scope) == 3

    def test_empty_mapping_is_invalid(self, scope: RequestScope) -> None:
        handler = CreateRangeHandler(_many_hooks(), scope.reads(Value), scope.writes(Value))
        assert handler.handle([]).is_error(ErrorCode.INVALID_INPUT_DATA)

    def test_maps_before_exists(self, scope: RequestScope) -> None:
        calls: list[str] = []

        def to_entities(commands: list[NewValue]) -> list[Value]:
            calls.append("map")
            return [_new(c) for c in commands]

        def exists(commands: list[NewValue]) -> None:
            calls.append("exists")

        handler = CreateRangeHandler(
            _many_hooks(to_entities=to_entities, exists=exists),
            scope.reads(Value),
            scope.writes(Value),
        )
        handler.handle([NewValue("a")])
        assert calls == ["map", "exists"]

    def test_existing_fails_whole_range(self, scope: RequestScope) -> None:
        add_values(scope, "b")
        handler = CreateRangeHandler(
            _many_hooks(exists=lambda cs: Value.name.in_([c.name for c in cs])),
            scope.reads(Value),
            scope.writes(Value),
        )
        assert handler.handle([NewValue("a"), NewValue("b")]).is_error(
            ErrorCode.EXIST_ON_CREATE
        )
        assert value_count(scope) == 1


class TestCreateBulkHandler:
    def test_result_is_passed_to_response(self, scope: RequestScope) -> None:
        handler = CreateBulkHandler(
            _many_hooks(to_response=lambda r: r.successful_inserts, key_selector=Value.id),
            scope.reads(Value),
            scope.bulk(Value),
        )
        response = handler.handle([NewValue(f"v{n}") for n in range(5)])
        assert response.succeeded
        assert response.data == 5

    def test_row_errors_fail_the_command(self, scope: RequestScope) -> None:
        options = default_create_options().model_copy(
            update={"validation_predicate": lambda v: v.name != "bad"}
        )
        handler = CreateBulkHandler(
            _many_hooks(options=lambda: options),
            scope.reads(Value),
            scope.bulk(Value),
        )
        response = handler.handle([NewValue("ok"), NewValue("bad")])
        assert response.is_error(ErrorCode.FAIL_ON_CREATE)
        assert response.errors == ["row 1: Entity failed validation."]
        assert value_count(scope) == 1


# ------------------------------------------------------------------
# Update
# ------------------------------------------------------------------


def _rename(command: Rename, value: Value) -> Value:
    value.name = command.new_name
    return value


class TestUpdateHandler:
    @pytest.fixture
    def handler(self, scope: RequestScope) -> UpdateHandler[Rename, Value, str]:
        hooks = UpdateHooks(
            find=lambda c: Value.name == c.name,
            to_entity=_rename,
            to_response=lambda v: v.name,
        )
        return UpdateHandler(hooks, scope.reads(Value), scope.writes(Value))

    def test_updates_and_verifies(self, scope: RequestScope, handler: UpdateHandler) -> None:
        add_values(scope, "old")
        response = handler.handle(Rename("old", "new"))
        assert response.succeeded
        assert response.code == "20003"
        stored = scope.reads(Value).find(Value.name == "new")
        assert stored.status_id == Status.VERIFIED

    def test_missing_row(self, scope: RequestScope, handler: UpdateHandler) -> None:
        response = handler.handle(Rename("ghost", "new"))
        assert response.is_error(ErrorCode.NOT_EXIST_ON_UPDATE)
        assert value_count(scope) == 0

    def test_no_predicate_is_invalid(self, scope: RequestScope) -> None:
        hooks = UpdateHooks(find=lambda c: None, to_entity=_rename, to_response=lambda v: v)
        handler = UpdateHandler(hooks, scope.reads(Value), scope.writes(Value))
        assert handler.handle(Rename("a", "b")).is_error(ErrorCode.INVALID_INPUT_DATA)


class TestUpdateManyHandlers:
    @staticmethod
    def _hooks(**overrides: object) -> UpdateManyHooks:
        def bump(command: str, values: list[Value]) -> list[Value]:
            for value in values:
                value.value_number += 10
            return values

        fields: dict[str, object] = {
            "find": lambda prefix: Value.name.startswith(prefix),
            "to_entities": bump,
            "to_response": lambda r: r,
        }
        fields.update(overrides)
        return UpdateManyHooks(**fields)  # type: ignore[arg-type]

    def test_range(self, scope: RequestScope) -> None:
        add_values(scope, "a1", "a2", "b1")
        handler = UpdateRangeHandler(
            self._hooks(to_response=len), scope.reads(Value), scope.writes(Value)
        )
        assert handler.handle("a").data == 2
        assert scope.reads(Value).count(Value.value_number >= 10) == 2

    def test_bulk(self, scope: RequestScope) -> None:
        add_values(scope, "a1", "a2", "b1")
        handler = UpdateBulkHandler(
            self._hooks(key_selector=Value.id, to_response=lambda r: r.updated_records),
            scope.reads(Value),
            scope.bulk(Value),
        )
        response = handler.handle("a")
        assert response.data == 2
        assert scope.reads(Value).count(Value.status_id == Status.VERIFIED) == 2

    def test_no_matches(self, scope: RequestScope) -> None:
        handler = UpdateRangeHandler(self._hooks(), scope.reads(Value), scope.writes(Value))
        assert handler.handle("zzz").is_error(ErrorCode.NOT_EXIST_ON_UPDATE)

    def test_bulk_row_conflict_fails_without_losing_other_rows(
        self, scope: RequestScope
    ) -> None:
        scope.bulk(Tag).bulk_insert([Tag(code="a"), Tag(code="b"), Tag(code="c")])
        renames = {"a": "z", "b": "c"}

        def rename(command: object, tags: list[Tag]) -> list[Tag]:
            for tag in tags:
                tag.code = renames[tag.code]
            return tags

        hooks = UpdateManyHooks(
            find=lambda c: Tag.code.in_(list(renames)),
            to_entities=rename,
            to_response=lambda r: r,
            key_selector=Tag.id,
        )
        handler = UpdateBulkHandler(hooks, scope.reads(Tag), scope.bulk(Tag))
        response = handler.handle("rename")
        assert response.is_error(ErrorCode.FAIL_ON_UPDATE)
        assert len(response.errors) == 1
        scope.session.expire_all()
        assert sorted(t.code for t in scope.reads(Tag).get()) == ["b", "c", "z"]

    def test_update_options_default_to_update_strategy(self) -> None:
        assert self._hooks().options().conflict_strategy is ConflictStrategy.UPDATE


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------

_NAMES = Projection((Value.name,), str)


class TestGetByIdHandler:
    def test_projected(self, scope: RequestScope) -> None:
        add_values(scope, "Alpha")
        hooks = GetByIdHooks(find=lambda q: Value.name == q.name, selector=_NAMES)
        response = GetByIdHandler(hooks, scope.reads(Value)).handle(Lookup("Alpha"))
        assert response.data == "Alpha"
        assert response.code == "20001"

    def test_mapped(self, scope: RequestScope) -> None:
        add_values(scope, "Alpha", value_number=7)
        hooks = GetByIdHooks(find=lambda q: Value.name == q.name, to_view=lambda v: v.value_number)
        assert GetByIdHandler(hooks, scope.reads(Value)).handle(Lookup("Alpha")).data == 7

    def test_missing(self, scope: RequestScope) -> None:
        hooks = GetByIdHooks(find=lambda q: Value.name == q.name, selector=_NAMES)
        response = GetByIdHandler(hooks, scope.reads(Value)).handle(Lookup("none"))
        assert response.is_error(ErrorCode.FAIL_ON_GET)

    def test_query_validator(self, scope: RequestScope) -> None:
        def require_name(query: Lookup) -> Response[None] | None:
            return None if query.name else Response.fail(ErrorCode.REQUIRED_FIELD)

        hooks = GetByIdHooks(find=lambda q: Value.name == q.name, validate_query=require_name)
        response = GetByIdHandler(hooks, scope.reads(Value)).handle(Lookup(""))
        assert response.is_error(ErrorCode.REQUIRED_FIELD)


class TestListHandlers:
    @pytest.fixture(autouse=True)
    def _seed(self, scope: RequestScope) -> None:
        add_values(scope, *(f"Al{n:02d}" for n in range(15)), "Bob", "Carl")

    @staticmethod
    def _hooks(**overrides: object) -> ListHooks:
        fields: dict[str, object] = {
            "predicate": lambda q: Value.name.startswith(q.prefix) if q.prefix else None,
            "order_by": lambda q: order_by(Value.name),
        }
        fields.update(overrides)
        return ListHooks(**fields)  # type: ignore[arg-type]

    def test_paged_projection(self, scope: RequestScope) -> None:
        handler = GetListPagedHandler(self._hooks(selector=_NAMES), scope.reads(Value))
        response = handler.handle(Page(page=2, page_size=10, prefix="Al"))
        paged = response.data
        assert paged.total_count == 15
        assert paged.data == [f"Al{n}" for n in range(10, 15)]
        assert paged.page_number == 2
        assert paged.has_next_page is False

    def test_paged_mapping(self, scope: RequestScope) -> None:
        handler = GetListPagedHandler(
            self._hooks(to_view=lambda v: v.name.lower()), scope.reads(Value)
        )
        paged = handler.handle(Page(page=1, page_size=10, prefix="Al")).data
        assert paged.total_pages == 2
        assert paged.data[0] == "al00"
        assert paged.page_size == 10

    def test_paged_empty(self, scope: RequestScope) -> None:
        handler = GetListPagedHandler(self._hooks(selector=_NAMES), scope.reads(Value))
        paged = handler.handle(Page(prefix="Zed")).data
        assert paged.data == []
        assert paged.total_count == 0
        assert paged.total_pages == 0

    @pytest.mark.parametrize(
        "hook",
        [{"selector": _NAMES}, {"to_view": lambda v: v.name}],
        ids=["projected", "mapped"],
    )
    def test_page_size_clamped_to_max(self, scope: RequestScope, hook: dict) -> None:
        reads = ReadRepository(scope.session, Value, config=RepositoryConfig(max_page_size=5))
        handler = GetListPagedHandler(self._hooks(**hook), reads)
        paged = handler.handle(Page(page=2, page_size=10, prefix="Al")).data
        assert paged.data == [f"Al{n:02d}" for n in range(5, 10)]
        assert paged.page_size == 5
        assert paged.total_pages == 3
        assert paged.has_next_page is True

    def test_unpaged(self, scope: RequestScope) -> None:
        handler = GetListHandler(self._hooks(selector=_NAMES), scope.reads(Value))
        assert len(handler.handle(Page(prefix="Al")).data) == 15

    def test_unpaged_entities(self, scope: RequestScope) -> None:
        handler = GetListHandler(self._hooks(), scope.reads(Value))
        rows = handler.handle(Page()).data
        assert [v.name for v in rows][-2:] == ["Bob", "Carl"]


class TestExportHandlers:
    @staticmethod
    def _hooks(**overrides: object) -> ExportHooks:
        fields: dict[str, object] = {
            "columns": lambda v: (v.name, v.value_number),
            "headers": ("Name", "Number"),
            "predicate": lambda q: Value.name.startswith(q.prefix) if q.prefix else None,
            "order_by": lambda q: order_by(Value.name),
        }
        fields.update(overrides)
        return ExportHooks(**fields)  # type: ignore[arg-type]

    def test_csv(self, scope: RequestScope) -> None:
        add_values(scope, "b", "a", value_number=3)
        buffer = ExportCsvHandler(self._hooks(), scope.reads(Value)).handle(Page())
        assert buffer == b'"Name","Number"\n"a","3"\n"b","3"\n'

    def test_nothing_matched(self, scope: RequestScope) -> None:
        add_values(scope, "a")
        handler = ExportCsvHandler(self._hooks(), scope.reads(Value))
        assert handler.handle(Page(prefix="zzz")) is None

    def test_failure_is_swallowed(self, scope: RequestScope) -> None:
        add_values(scope, "a")

        def broken(value: Value) -> tuple[object, ...]:
            raise ValueError("bad column")

        handler = ExportExcelHandler(self._hooks(columns=broken), scope.reads(Value))
        assert handler.handle(Page()) is None

    def test_excel_summary(self, scope: RequestScope) -> None:
        add_values(scope, "a", "b")
        seen: list[int] = []

        def summary(query: Page, values: list[Value]) -> list[tuple[str, object]]:
            seen.append(len(values))
            return [("Total", len(values))]

        handler = ExportExcelHandler(
            self._hooks(summary=summary, title="Report"), scope.reads(Value)
        )
        buffer = handler.handle(Page())
        assert buffer is not None
        assert buffer[:2] == b"PK"
        assert seen == [2]
