"""Single-row read: projection when available, else load and map."""

from __future__ import annotations

from typing import Any

from crudforge.application.base import Handler, invalid_input
from crudforge.application.hooks import GetByIdHooks, rejection
from crudforge.cancellation import CancellationToken
from crudforge.domain.messages import ErrorCode, SuccessCode
from crudforge.domain.response import Response
from crudforge.infrastructure.repositories.contracts import Projection
from crudforge.infrastructure.repositories.read import ReadRepository


class GetByIdHandler[Q, E, R](Handler[Q, R]):
    def __init__(self, hooks: GetByIdHooks[Q, E, R], reads: ReadRepository[E]) -> None:
        self._hooks = hooks
        self._reads = reads

    def _handle(self, query: Q | None, cancel: CancellationToken | None) -> Response[Any]:
        hooks = self._hooks
        if query is None:
            return invalid_input()
        rejected = rejection(hooks.validate_query, query)
        if rejected is not None:
            return rejected

        predicate = hooks.find(query)
        if predicate is None:
            return invalid_input()

        if hooks.selector is not None:
            projection = hooks.selector if isinstance(hooks.selector, Projection) else None
            stmt = self._reads.query(predicate, projection, hooks.include)
            view = self._reads.fetch_first(stmt, hooks.selector, cancel=cancel)
        else:
            stmt = self._reads.query(predicate, include=hooks.include)
            entity = self._reads.fetch_first(stmt, cancel=cancel)
            if entity is None:
                return Response.fail(ErrorCode.FAIL_ON_GET)
            view = entity if hooks.to_view is None else hooks.to_view(entity)

        if view is None:
            return Response.fail(ErrorCode.FAIL_ON_GET)
        return Response.success(view, SuccessCode.SUCCESS_ON_GET)
