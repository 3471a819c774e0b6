"""The ``Value`` entity: a named number with audit and lifecycle columns."""

from __future__ import annotations

import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from crudforge.infrastructure.database.base import AuditableMixin, Base


class Value(AuditableMixin, Base):
    __tablename__ = "value_records"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    value_number: Mapped[int]

    def __repr__(self) -> str:
        return f"Value(id={self.id!s}, name={self.name!r}, value_number={self.value_number})"
