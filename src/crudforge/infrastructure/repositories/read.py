"""Generic read repository: filter, order, paginate, project, count.

Every call runs against the request's shared :class:`~sqlalchemy.orm.Session`
and checks the cancellation token before touching the database.
"""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import Select, func, select, text
from sqlalchemy.orm import Session

from crudforge.cancellation import CancellationToken, check_cancelled
from crudforge.config.models import RepositoryConfig
from crudforge.domain.paging import PagedResult
from crudforge.exceptions import NotFoundError
from crudforge.infrastructure.repositories.contracts import (
    Include,
    OrderBy,
    Predicate,
    Projection,
    Selector,
)

_PLACEHOLDER = re.compile(r"\{(\d+)\}")


class ReadRepository[E]:
    """Query surface over one entity type."""

    def __init__(
        self,
        session: Session,
        entity: type[E],
        *,
        config: RepositoryConfig | None = None,
    ) -> None:
        self._session = session
        self._entity = entity
        self._config = config or RepositoryConfig()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def entity(self) -> type[E]:
        return self._entity

    # ------------------------------------------------------------------
    # Statement composition (no I/O)
    # ------------------------------------------------------------------

    def get_queryable(self) -> Select[tuple[E]]:
        """Base ``SELECT`` over the entity, for ad-hoc composition."""
        return select(self._entity)

    def query(
        self,
        predicate: Predicate | None = None,
        selector: Projection[Any] | None = None,
        include: Include | None = None,
    ) -> Select[Any]:
        """Compose filter, include and projection without executing.

        Includes only apply to entity selects; a projection replaces the
        selected columns and drops loader options.
        """
        if selector is not None and not isinstance(selector, Projection):
            raise TypeError("query() composes store-side statements; pass a Projection")
        if selector is None:
            stmt: Select[Any] = self.get_queryable()
            if include is not None:
                stmt = include(stmt)
        else:
            stmt = select(*selector.columns).select_from(self._entity)
        if predicate is not None:
            stmt = stmt.where(predicate)
        return stmt

    # ------------------------------------------------------------------
    # Execution helpers shared with handlers
    # ------------------------------------------------------------------

    def fetch_first(
        self,
        stmt: Select[Any],
        selector: Selector[E, Any] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """First row of *stmt* (entity, projected value, or mapped value), or None."""
        check_cancelled(cancel)
        if isinstance(selector, Projection):
            row = self._session.execute(stmt.limit(1)).first()
            return None if row is None else selector.build(row)
        entity = self._session.scalars(stmt.limit(1)).first()
        if entity is None or selector is None:
            return entity
        return selector(entity)

    def fetch_all(
        self,
        stmt: Select[Any],
        selector: Selector[E, Any] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Any]:
        check_cancelled(cancel)
        if isinstance(selector, Projection):
            return [selector.build(row) for row in self._session.execute(stmt)]
        entities = list(self._session.scalars(stmt).unique())
        if selector is None:
            return entities
        return [selector(entity) for entity in entities]

    def count_of(self, stmt: Select[Any], *, cancel: CancellationToken | None = None) -> int:
        """Row count of *stmt*, ignoring any ordering."""
        check_cancelled(cancel)
        counted = select(func.count()).select_from(stmt.order_by(None).subquery())
        return int(self._session.scalar(counted) or 0)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(
        self,
        predicate: Predicate | None = None,
        order_by: OrderBy | None = None,
        include: Include | None = None,
        page_size: int = -1,
        page_number: int = 1,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[E]:
        """Matching entities; ``page_size <= 0`` returns every match."""
        stmt = self.query(predicate, include=include)
        if order_by is not None:
            stmt = order_by(stmt)
        if page_size > 0:
            stmt = _page(stmt, page_size, page_number)
        return self.fetch_all(stmt, cancel=cancel)

    def get_paged(
        self,
        predicate: Predicate | None = None,
        selector: Selector[E, Any] | None = None,
        order_by: OrderBy | None = None,
        include: Include | None = None,
        page_size: int | None = None,
        page_number: int = 1,
        *,
        cancel: CancellationToken | None = None,
    ) -> PagedResult[Any]:
        """One page of (optionally projected) results plus the unpaged total.

        The total is counted on the filtered statement before ordering and
        paging are applied.
        """
        if page_size is None:
            page_size = self._config.default_page_size
        page_size = min(page_size, self._config.max_page_size)

        projection = selector if isinstance(selector, Projection) else None
        stmt = self.query(predicate, projection, include)
        total = self.count_of(stmt, cancel=cancel)

        if order_by is not None:
            stmt = order_by(stmt)
        if page_size > 0:
            stmt = _page(stmt, page_size, page_number)

        return PagedResult(
            data=self.fetch_all(stmt, selector, cancel=cancel),
            total_count=total,
            page_number=page_number,
            page_size=page_size,
        )

    def find(
        self,
        predicate: Predicate | None = None,
        include: Include | None = None,
        selector: Selector[E, Any] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Any:
        """First match, projected when *selector* is given.

        Raises:
            NotFoundError: Nothing matches.
        """
        projection = selector if isinstance(selector, Projection) else None
        result = self.fetch_first(
            self.query(predicate, projection, include), selector, cancel=cancel
        )
        if result is None:
            raise NotFoundError()
        return result

    def get_by_id(self, entity_id: Any, *, cancel: CancellationToken | None = None) -> E:
        """Primary-key lookup.

        Raises:
            NotFoundError: No row has that key.
        """
        check_cancelled(cancel)
        entity = self._session.get(self._entity, entity_id)
        if entity is None:
            raise NotFoundError(f"{self._entity.__name__} {entity_id!r} was not found.")
        return entity

    def exists(
        self, predicate: Predicate | None = None, *, cancel: CancellationToken | None = None
    ) -> bool:
        check_cancelled(cancel)
        return bool(self._session.scalar(select(self.query(predicate).exists())))

    def count(
        self,
        predicate: Predicate | None = None,
        include: Include | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        return self.count_of(self.query(predicate, include=include), cancel=cancel)

    def execute_raw_sql(
        self, sql: str, *params: Any, cancel: CancellationToken | None = None
    ) -> list[E]:
        """Load entities from hand-written SQL.

        Positional placeholders ``{0}``, ``{1}``, ... are bound to *params*.
        The caller is responsible for the statement's correctness.
        """
        check_cancelled(cancel)
        bound = _PLACEHOLDER.sub(lambda m: f":p{m.group(1)}", sql)
        stmt = select(self._entity).from_statement(text(bound))
        values = {f"p{i}": value for i, value in enumerate(params)}
        return list(self._session.scalars(stmt, values))


def _page(stmt: Select[Any], page_size: int, page_number: int) -> Select[Any]:
    return stmt.offset((max(page_number, 1) - 1) * page_size).limit(page_size)
