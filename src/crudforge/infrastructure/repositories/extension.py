"""Row-level maintenance operations addressed by primary key.

Soft delete, restore, status changes and active toggling are single
``UPDATE``/``DELETE`` statements against the entity's table, with every
value bound as a parameter.  Failures are logged and reported as
``False`` / ``0``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog
from sqlalchemy import ColumnElement, delete, inspect, not_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crudforge.cancellation import CancellationToken, check_cancelled
from crudforge.config.models import RepositoryConfig
from crudforge.domain.status import Status
from crudforge.infrastructure.database.base import utc_now

log = structlog.get_logger(__name__)


class ExtensionRepository[E]:
    """Soft-delete, restore and status maintenance over one entity type."""

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
        primary_key = inspect(entity).primary_key
        if len(primary_key) != 1:
            raise TypeError(f"{entity.__name__} must have a single-column primary key")
        self._pk = primary_key[0]

    # ------------------------------------------------------------------
    # Single row
    # ------------------------------------------------------------------

    def delete_record(self, entity_id: Any, *, cancel: CancellationToken | None = None) -> bool:
        """Physically delete one row."""
        stmt = delete(self._entity).where(self._pk == entity_id)
        return self._execute("delete_record", stmt, cancel) > 0

    def soft_delete(
        self,
        entity_id: Any,
        *,
        deleted_by: str | None = None,
        cancel: CancellationToken | None = None,
    ) -> bool:
        """Flag one row deleted; falls back to a physical delete when soft delete is off."""
        if not self._config.enable_soft_delete:
            return self.delete_record(entity_id, cancel=cancel)
        return self._set(
            "soft_delete",
            self._pk == entity_id,
            {"is_deleted": True, "deleted_at": utc_now(), "deleted_by": deleted_by},
            cancel,
        ) > 0

    def restore(self, entity_id: Any, *, cancel: CancellationToken | None = None) -> bool:
        return self._set(
            "restore",
            self._pk == entity_id,
            {"is_deleted": False, "deleted_at": None, "deleted_by": None},
            cancel,
        ) > 0

    def change_status(
        self, entity_id: Any, status: Status, *, cancel: CancellationToken | None = None
    ) -> bool:
        return self._set(
            "change_status", self._pk == entity_id, {"status_id": int(status)}, cancel
        ) > 0

    def toggle_active(self, entity_id: Any, *, cancel: CancellationToken | None = None) -> bool:
        """Flip ``is_active`` in the database without reading it first."""
        column = getattr(self._entity, "is_active", None)
        if column is None:
            log.warning(
                "extension.missing_column", entity=self._entity.__name__, column="is_active"
            )
            return False
        stmt = update(self._entity).where(self._pk == entity_id).values(is_active=not_(column))
        return self._execute("toggle_active", stmt, cancel) > 0

    # ------------------------------------------------------------------
    # Many rows
    # ------------------------------------------------------------------

    def delete_records(
        self, entity_ids: Iterable[Any], *, cancel: CancellationToken | None = None
    ) -> int:
        ids = list(entity_ids)
        if not ids:
            return 0
        stmt = delete(self._entity).where(self._pk.in_(ids))
        return self._execute("delete_records", stmt, cancel)

    def change_status_batch(
        self,
        entity_ids: Iterable[Any],
        status: Status,
        *,
        cancel: CancellationToken | None = None,
    ) -> int:
        ids = list(entity_ids)
        if not ids:
            return 0
        values = {"status_id": int(status)}
        return self._set("change_status_batch", self._pk.in_(ids), values, cancel)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _set(
        self,
        op: str,
        where: ColumnElement[bool],
        values: dict[str, Any],
        cancel: CancellationToken | None,
    ) -> int:
        missing = [name for name in values if not hasattr(self._entity, name)]
        if missing:
            log.warning("extension.missing_column", entity=self._entity.__name__, column=missing)
            return 0
        return self._execute(op, update(self._entity).where(where).values(**values), cancel)

    def _execute(self, op: str, stmt: Any, cancel: CancellationToken | None) -> int:
        check_cancelled(cancel)
        try:
            result = self._session.execute(stmt)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            log.exception("write.failed", op=op, entity=self._entity.__name__)
            return 0
        return int(result.rowcount or 0)
