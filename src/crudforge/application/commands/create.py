"""Create handlers: single entity, range, and bulk.

Pipeline (single):  VALIDATE -> EXISTS -> MAP -> STATUS -> CHECK -> PERSIST -> RESPOND
Pipeline (many):    VALIDATE -> MAP -> EXISTS -> STATUS -> CHECK -> PERSIST -> RESPOND

The single-entity handler checks uniqueness before mapping; the range and
bulk handlers map first.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from crudforge.application.base import Handler, invalid_input
from crudforge.application.hooks import CreateHooks, CreateManyHooks, bulk_errors, rejection
from crudforge.cancellation import CancellationToken
from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.response import Response
from crudforge.infrastructure.repositories.bulk import BulkRepository
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.infrastructure.repositories.write import WriteRepository


def _exists(
    hooks: CreateHooks[Any, Any, Any] | CreateManyHooks[Any, Any, Any],
    reads: ReadRepository[Any],
    command: Any,
    cancel: CancellationToken | None,
) -> bool:
    if hooks.exists is None:
        return False
    predicate = hooks.exists(command)
    return predicate is not None and reads.exists(predicate, cancel=cancel)


class CreateHandler[C, E, R](Handler[C, R]):
    """Create one entity."""

    def __init__(
        self,
        hooks: CreateHooks[C, E, R],
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

        # ── EXISTS ──
        if _exists(hooks, self._reads, command, cancel):
            return Response.fail(ErrorCode.EXIST_ON_CREATE)

        # ── MAP ──
        entity = hooks.to_entity(command)
        if entity is None:
            return invalid_input()

        # ── STATUS / CHECK ──
        hooks.set_status(entity)
        rejected = rejection(hooks.validate, entity)
        if rejected is not None:
            return rejected

        # ── PERSIST ──
        created = self._writes.create(entity, cancel=cancel)
        if created is None:
            return Response.fail(ErrorCode.FAIL_ON_CREATE)

        return Response.success(hooks.to_response(created), SuccessCode.SUCCESS_ON_CREATE)


class _CreateManyHandler[C, E, R](Handler[C, R]):
    """Shared front half of the range and bulk create handlers."""

    def __init__(self, hooks: CreateManyHooks[C, E, R], reads: ReadRepository[E]) -> None:
        self._hooks = hooks
        self._reads = reads

    def _prepare(
        self, command: C | None, cancel: CancellationToken | None
    ) -> Sequence[E] | Response[Any]:
        hooks = self._hooks

        # ── VALIDATE ──
        if command is None:
            return invalid_input()

        # ── MAP ──
        entities = hooks.to_entities(command)
        if not entities:
            return invalid_input()

        # ── EXISTS ──
        if _exists(hooks, self._reads, command, cancel):
            return Response.fail(ErrorCode.EXIST_ON_CREATE)

        # ── STATUS / CHECK ──
        for entity in entities:
            hooks.set_status(entity)
        rejected = rejection(hooks.validate, entities)
        if rejected is not None:
            return rejected
        return entities


class CreateRangeHandler[C, E, R](_CreateManyHandler[C, E, R]):
    """Create many entities through the write repository's batched range insert."""

    def __init__(
        self,
        hooks: CreateManyHooks[C, E, R],
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
        if not self._writes.create_range(entities, self._hooks.batch_size, cancel=cancel):
            return Response.fail(ErrorCode.FAIL_ON_CREATE)

        return Response.success(self._hooks.to_response(entities), SuccessCode.SUCCESS_ON_CREATE)


class CreateBulkHandler[C, E, R](_CreateManyHandler[C, E, R]):
    """Create many entities through the bulk engine."""

    def __init__(
        self,
        hooks: CreateManyHooks[C, E, R],
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
        result = self._bulk.bulk_insert(
            prepared,
            self._hooks.key_selector,
            self._hooks.options(),
            cancel=cancel,
        )
        if not result.is_success:
            return Response.fail(ErrorCode.FAIL_ON_CREATE, errors=bulk_errors(result))

        return Response.success(self._hooks.to_response(result), SuccessCode.SUCCESS_ON_CREATE)
