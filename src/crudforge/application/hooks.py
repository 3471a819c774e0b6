"""Hook structs that parameterize the generic handlers.

A feature describes its behavior with plain functions gathered in one of
these frozen structs; the handler drives the fixed step sequence and calls
them at the right moments.  Validators return ``None`` (or a succeeded
Response) to pass, or a failed Response that the handler returns unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from crudforge.domain.bulk import (
    BulkErrorHandling,
    BulkInsertOptions,
    BulkResult,
    ConflictStrategy,
)
from crudforge.domain.response import Response
from crudforge.domain.status import mark_unverified, mark_verified
from crudforge.infrastructure.repositories.contracts import (
    Include,
    KeySelector,
    OrderBy,
    Predicate,
    Selector,
)

type Validator[T] = Callable[[T], Response[Any] | None]


def default_create_options() -> BulkInsertOptions:
    return BulkInsertOptions(
        batch_size=1000,
        use_transaction=True,
        timeout_seconds=300,
        conflict_strategy=ConflictStrategy.SKIP,
        validate_entities=True,
        error_handling=BulkErrorHandling.CONTINUE_ON_ERROR,
        return_detailed_results=True,
    )


def default_update_options() -> BulkInsertOptions:
    return default_create_options().model_copy(
        update={"conflict_strategy": ConflictStrategy.UPDATE}
    )


def rejection(validate: Validator[Any] | None, target: Any) -> Response[Any] | None:
    """Run *validate* and return its response only when it failed."""
    if validate is None:
        return None
    result = validate(target)
    if result is None or result.succeeded:
        return None
    return result


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@dataclass(frozen=True)
class CreateHooks[C, E, R]:
    """Single-entity create.

    Attributes:
        to_entity: Command to a new entity; ``None`` means invalid input.
        to_response: Persisted entity to the response payload.
        exists: Uniqueness predicate for the command, or ``None`` to skip.
    """

    to_entity: Callable[[C], E | None]
    to_response: Callable[[E], R]
    exists: Callable[[C], Predicate | None] | None = None
    validate: Validator[E] | None = None
    set_status: Callable[[E], None] = mark_unverified


@dataclass(frozen=True)
class CreateManyHooks[C, E, R]:
    """Range and bulk create.

    ``to_response`` receives the created entities (range) or the
    :class:`BulkResult` (bulk).
    """

    to_entities: Callable[[C], Sequence[E] | None]
    to_response: Callable[[Any], R]
    exists: Callable[[C], Predicate | None] | None = None
    key_selector: KeySelector | None = None
    validate: Validator[Sequence[E]] | None = None
    set_status: Callable[[E], None] = mark_unverified
    options: Callable[[], BulkInsertOptions] = default_create_options
    batch_size: int = 100


@dataclass(frozen=True)
class UpdateHooks[C, E, R]:
    """Single-entity update; ``to_entity`` merges the command into the loaded row."""

    find: Callable[[C], Predicate | None]
    to_entity: Callable[[C, E], E | None]
    to_response: Callable[[E], R]
    validate: Validator[E] | None = None
    set_status: Callable[[E], None] = mark_verified


@dataclass(frozen=True)
class UpdateManyHooks[C, E, R]:
    """Range and bulk update over every row matched by ``find``."""

    find: Callable[[C], Predicate | None]
    to_entities: Callable[[C, list[E]], Sequence[E] | None]
    to_response: Callable[[Any], R]
    key_selector: KeySelector | None = None
    validate: Validator[Sequence[E]] | None = None
    set_status: Callable[[E], None] = mark_verified
    options: Callable[[], BulkInsertOptions] = default_update_options
    batch_size: int = 100


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


@dataclass(frozen=True)
class GetByIdHooks[Q, E, R]:
    """Single-row read.

    With a ``selector`` the view is projected in the store; otherwise the
    entity is loaded and passed to ``to_view`` (or returned as-is).
    """

    find: Callable[[Q], Predicate | None]
    to_view: Callable[[E], R | None] | None = None
    selector: Selector[E, R] | None = None
    include: Include | None = None
    validate_query: Validator[Q] | None = None


@dataclass(frozen=True)
class ListHooks[Q, E, R]:
    """List and paged-list reads."""

    predicate: Callable[[Q], Predicate | None] | None = None
    order_by: Callable[[Q], OrderBy | None] | None = None
    to_view: Callable[[E], R] | None = None
    selector: Selector[E, R] | None = None
    include: Include | None = None
    validate_query: Validator[Q] | None = None


@dataclass(frozen=True)
class ExportHooks[Q, E]:
    """Tabular export: one row of cells per matching entity.

    ``title``, ``sheet_title`` and ``summary`` only affect Excel output.
    """

    columns: Callable[[E], Sequence[Any]]
    headers: Sequence[str]
    predicate: Callable[[Q], Predicate | None] | None = None
    order_by: Callable[[Q], OrderBy | None] | None = None
    include: Include | None = None
    title: str | None = None
    sheet_title: str | None = None
    summary: Callable[[Q, list[E]], Sequence[tuple[str, Any]]] | None = None


def bulk_errors(result: BulkResult) -> list[str]:
    """Row error messages of *result*, prefixed with the row index."""
    return [f"row {error.row_index}: {error.message}" for error in result.errors]
