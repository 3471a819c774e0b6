"""Generic write repository: create, update and delete (single, range, where).

Range operations commit per batch: a failure in batch N leaves batches
before N committed.  Store failures are logged and reported through the
return value (``False`` / ``0``); cancellation propagates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

import structlog
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from crudforge.cancellation import CancellationToken, check_cancelled
from crudforge.config.models import RepositoryConfig
from crudforge.infrastructure.database.tracking import tracker_for
from crudforge.infrastructure.repositories._columns import copy_columns, value_columns
from crudforge.infrastructure.repositories.contracts import Predicate

log = structlog.get_logger(__name__)


def chunked[T](items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of *size*; one slice when *size* <= 0."""
    if size <= 0 or len(items) <= size:
        if items:
            yield items
        return
    for start in range(0, len(items), size):
        yield items[start : start + size]


class WriteRepository[E]:
    """Mutation surface over one entity type."""

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
        self._tracker = tracker_for(session)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, entity: E, *, cancel: CancellationToken | None = None) -> E | None:
        """Persist one entity; store-assigned values are populated on return.

        Returns None, with the session rolled back, when the store rejects it.
        """
        check_cancelled(cancel)
        try:
            self._session.add(entity)
            self._session.commit()
            self._session.refresh(entity)
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op="create", entity=self._entity.__name__)
            return None
        return entity

    def create_range(
        self,
        entities: Iterable[E],
        batch_size: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bool:
        items = list(entities)
        return self._per_batch("create_range", items, batch_size, self._session.add, cancel)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, entity: E, *, cancel: CancellationToken | None = None) -> bool:
        """Write *entity* back; True when at least one row was written."""
        check_cancelled(cancel)
        try:
            self._touch(entity)
            return self.save_changes(cancel=cancel) > 0
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op="update", entity=self._entity.__name__)
            return False

    def update_range(
        self,
        entities: Iterable[E],
        batch_size: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bool:
        return self._per_batch("update_range", list(entities), batch_size, self._touch, cancel)

    def update_where(
        self,
        predicate: Predicate,
        update: Callable[[E], E],
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        """Apply *update* to every match and commit; returns rows written.

        *update* may mutate the entity in place or return a new instance
        whose column values are copied back (primary keys excepted).
        """
        check_cancelled(cancel)
        try:
            matches = self._session.scalars(select(self._entity).where(predicate)).all()
            for entity in matches:
                updated = update(entity)
                if updated is not None and updated is not entity:
                    copy_columns(updated, entity, skip_none=False)
            return self.save_changes(cancel=cancel)
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op="update_where", entity=self._entity.__name__)
            return 0

    # ------------------------------------------------------------------
    # Delete (physical)
    # ------------------------------------------------------------------

    def delete(self, entity: E, *, cancel: CancellationToken | None = None) -> bool:
        check_cancelled(cancel)
        try:
            self._session.delete(self._attach(entity))
            return self.save_changes(cancel=cancel) > 0
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op="delete", entity=self._entity.__name__)
            return False

    def delete_by_id(self, entity_id: Any, *, cancel: CancellationToken | None = None) -> bool:
        """Delete by primary key; False when no such row exists."""
        check_cancelled(cancel)
        entity = self._session.get(self._entity, entity_id)
        if entity is None:
            return False
        return self.delete(entity, cancel=cancel)

    def delete_range(
        self,
        entities: Iterable[E],
        batch_size: int | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> bool:
        def remove(entity: E) -> None:
            self._session.delete(self._attach(entity))

        return self._per_batch("delete_range", list(entities), batch_size, remove, cancel)

    def delete_where(
        self, predicate: Predicate, *, cancel: CancellationToken | None = None
    ) -> int:
        check_cancelled(cancel)
        try:
            matches = self._session.scalars(select(self._entity).where(predicate)).all()
            for entity in matches:
                self._session.delete(entity)
            return self.save_changes(cancel=cancel)
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op="delete_where", entity=self._entity.__name__)
            return 0

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def save_changes(self, *, cancel: CancellationToken | None = None) -> int:
        """Flush and commit; returns the rows written since the last commit."""
        check_cancelled(cancel)
        self._session.flush()
        written = self._tracker.pending
        self._session.commit()
        return written

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _per_batch(
        self,
        op: str,
        items: list[E],
        batch_size: int | None,
        apply: Callable[[E], Any],
        cancel: CancellationToken | None,
    ) -> bool:
        size = self._config.default_batch_size if batch_size is None else batch_size
        committed = 0
        try:
            for batch in chunked(items, size):
                check_cancelled(cancel)
                for entity in batch:
                    apply(entity)
                self._session.commit()
                committed += len(batch)
        except SQLAlchemyError:
            self._session.rollback()
            log.exception(
                "write.failed",
                op=op,
                entity=self._entity.__name__,
                committed=committed,
                total=len(items),
            )
            return False
        return True

    def _attach(self, entity: E) -> E:
        if entity in self._session:
            return entity
        return self._session.merge(entity)

    def _touch(self, entity: E) -> None:
        """Attach *entity* and mark it dirty so the flush always writes it."""
        attached = self._attach(entity)
        keys = value_columns(inspect(attached).mapper)
        if keys:
            getattr(attached, keys[0])
            flag_modified(attached, keys[0])
