"""List reads, unpaged and paged.

Both prefer the hooks' ``selector`` (projected in the store) and fall back
to loading full entities and mapping them with ``to_view``.
"""

from __future__ import annotations

from typing import Any, Protocol

from crudforge.application.base import Handler, invalid_input
from crudforge.application.hooks import ListHooks, rejection
from crudforge.cancellation import CancellationToken
from crudforge.domain.messages import SuccessCode
from crudforge.domain.response import Response
from crudforge.infrastructure.repositories.contracts import OrderBy, Predicate, Projection
from crudforge.infrastructure.repositories.read import ReadRepository


class Pageable(Protocol):
    page: int
    page_size: int


class _ListBase[Q, E, R](Handler[Q, R]):
    def __init__(self, hooks: ListHooks[Q, E, R], reads: ReadRepository[E]) -> None:
        self._hooks = hooks
        self._reads = reads

    def _criteria(self, query: Q) -> tuple[Predicate | None, OrderBy | None]:
        hooks = self._hooks
        predicate = hooks.predicate(query) if hooks.predicate is not None else None
        ordering = hooks.order_by(query) if hooks.order_by is not None else None
        return predicate, ordering

    def _map(self, entities: list[E]) -> list[Any]:
        to_view = self._hooks.to_view
        if to_view is None:
            return list(entities)
        return [to_view(entity) for entity in entities]


class GetListHandler[Q, E, R](_ListBase[Q, E, R]):
    """Every matching row, ordered, no pagination."""

    def _handle(self, query: Q | None, cancel: CancellationToken | None) -> Response[Any]:
        hooks = self._hooks
        if query is None:
            return invalid_input()
        rejected = rejection(hooks.validate_query, query)
        if rejected is not None:
            return rejected

        predicate, ordering = self._criteria(query)
        if hooks.selector is not None:
            projection = hooks.selector if isinstance(hooks.selector, Projection) else None
            stmt = self._reads.query(predicate, projection, hooks.include)
            if ordering is not None:
                stmt = ordering(stmt)
            views = self._reads.fetch_all(stmt, hooks.selector, cancel=cancel)
        else:
            entities = self._reads.get(
                predicate, ordering, hooks.include, page_size=-1, cancel=cancel
            )
            views = self._map(entities)

        return Response.success(views, SuccessCode.SUCCESS_ON_GET)


class GetListPagedHandler[Q: Pageable, E, R](_ListBase[Q, E, R]):
    """One page of matching rows; the query carries ``page`` and ``page_size``.

    Paging goes through ``ReadRepository.get_paged`` for both the projected
    and the mapped path, so the page size is clamped to ``max_page_size``
    the same way either way.
    """

    def _handle(self, query: Q | None, cancel: CancellationToken | None) -> Response[Any]:
        hooks = self._hooks
        if query is None:
            return invalid_input()
        rejected = rejection(hooks.validate_query, query)
        if rejected is not None:
            return rejected

        predicate, ordering = self._criteria(query)
        selector = hooks.selector if hooks.selector is not None else hooks.to_view
        paged = self._reads.get_paged(
            predicate,
            selector,
            ordering,
            hooks.include,
            page_size=query.page_size,
            page_number=query.page,
            cancel=cancel,
        )
        return Response.success(paged, SuccessCode.SUCCESS_ON_GET)
