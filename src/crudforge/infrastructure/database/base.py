"""Declarative base and shared audit columns for crudforge entities."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from crudforge.domain.status import Status


def utc_now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base; every entity handled by the repositories derives from it."""


class AuditableMixin:
    """Audit, soft-delete and lifecycle columns.

    Provides ``status_id``, so every auditable entity satisfies the
    :class:`~crudforge.domain.status.StatusEntity` capability.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
    created_by: Mapped[str | None] = mapped_column(String(100), default=None)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    updated_by: Mapped[str | None] = mapped_column(String(100), default=None)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    is_deleted: Mapped[bool] = mapped_column(default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    deleted_by: Mapped[str | None] = mapped_column(String(100), default=None)
    is_active: Mapped[bool] = mapped_column(default=True)
    status_id: Mapped[int] = mapped_column(default=int(Status.UNVERIFIED))
