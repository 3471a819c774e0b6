"""Update handlers: single entity, range, and bulk upsert.

Pipeline: VALIDATE -> FIND -> MAP -> STATUS -> CHECK -> PERSIST -> RESPOND
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from crudforge.application.base import Handler, invalid_input
from crudforge.application.hooks import UpdateHooks, UpdateManyHooks, bulk_errors, rejection
from crudforge.cancellation import CancellationToken
from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.response import Response
from crudforge.infrastructure.repositories.bulk import BulkRepository
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.infrastructure.repositories.write import WriteRepository


class UpdateHandler[C, E, R](Handler[C, R]):
    """Update the first row matched by the command's find predicate."""

    def __init__(
        self,
        hooks: UpdateHooks[C, E, R],
        reads: ReadRepository[E],
        writes: WriteRepository[E],
    ) -> None:
        self._hooks = hooks
        self._reads = reads
        self._writes = writes

    def _handle(self, command: C | None, cancel: CancellationToken | None) -> Response[Any]:
        hooks = self._hooks

        # ── VALIDATE ──
        if command is None:
            return invalid_input()
        predicate = hooks.find(command)
        if predicate is None:
            return invalid_input()

        # ── FIND ──
        existing = self._reads.fetch_first(self._reads.query(predicate), cancel=cancel)
        if existing is None:
            return Response.fail(ErrorCode.NOT_EXIST_ON_UPDATE)

        # ── MAP ──
        entity = hooks.to_entity(command, existing)
        if entity is None:
            return invalid_input()

        # ── STATUS / CHECK ──
        hooks.set_status(entity)
        rejected = rejection(hooks.validate, entity)
        if rejected is not None:
            return rejected

        # ── PERSIST ──
        if not self._writes.update(entity, cancel=cancel):
            return Response.fail(ErrorCode.FAIL_ON_UPDATE)

        return Response.success(hooks.to_response(entity), SuccessCode.SUCCESS_ON_UPDATE)


class _UpdateManyHandler[C, E, R](Handler[C, R]):
    """Shared front half of the range and bulk update handlers."""

    def __init__(self, hooks: UpdateManyHooks[C, E, R], reads: ReadRepository[E]) -> None:
        self._hooks = hooks
        self._reads = reads

    def _prepare(
        self, command: C | None, cancel: CancellationToken | None
    ) -> Sequence[E] | Response[Any]:
        hooks = self._hooks

        # ── VALIDATE ──
        if command is None:
            return invalid_input()
        predicate = hooks.find(command)
        if predicate is None:
            return invalid_input()

        # ── FIND ──
        existing = self._reads.get(predicate, cancel=cancel)
        if not existing:
            return Response.fail(ErrorCode.NOT_EXIST_ON_UPDATE)

        # ── MAP ──
        entities = hooks.to_entities(command, existing)
        if not entities:
            return invalid_input()

        # ── STATUS / CHECK ──
        for entity in entities:
            hooks.set_status(entity)
        rejected = rejection(hooks.validate, entities)
        if rejected is not None:
            return rejected
        return entities


class UpdateRangeHandler[C, E, R](_UpdateManyHandler[C, E, R]):
    """Write back every matched row through the batched range update."""

    def __init__(
        self,
        hooks: UpdateManyHooks[C, E, R],
        reads: ReadRepository[E],
        writes: WriteRepository[E],
    ) -> None:
        super().__init__(hooks, reads)
        self._writes = writes

    def _handle(self, command: C | None, cancel: CancellationToken | None) -> Response[Any]:
        prepared = self._prepare(command, cancel)
        if isinstance(prepared, Response):
            return prepared

        # ── PERSIST ──
        entities = list(prepared)
        if not self._writes.update_range(entities, self._hooks.batch_size, cancel=cancel):
            return Response.fail(ErrorCode.FAIL_ON_UPDATE)

        return Response.success(self._hooks.to_response(entities), SuccessCode.SUCCESS_ON_UPDATE)


class UpdateBulkHandler[C, E, R](_UpdateManyHandler[C, E, R]):
    """Write back every matched row through the bulk upsert engine.

    The upsert runs without a merge function: incoming column values are
    copied onto the stored rows per the options' conflict strategy.
    """

    def __init__(
        self,
        hooks: UpdateManyHooks[C, E, R],
        reads: ReadRepository[E],
        bulk: BulkRepository[E],
    ) -> None:
        super().__init__(hooks, reads)
        self._bulk = bulk

    def _handle(self, command: C | None, cancel: CancellationToken | None) -> Response[Any]:
        prepared = self._prepare(command, cancel)
        if isinstance(prepared, Response):
            return prepared

        # ── PERSIST ──
        result = self._bulk.bulk_upsert(
            prepared,
            self._hooks.key_selector,
            None,
            self._hooks.options(),
            cancel=cancel,
        )
        if not result.is_success:
            return Response.fail(ErrorCode.FAIL_ON_UPDATE, errors=bulk_errors(result))

        return Response.success(self._hooks.to_response(result), SuccessCode.SUCCESS_ON_UPDATE)
