"""Database engine, declarative base and session change tracking."""

from crudforge.infrastructure.database.base import AuditableMixin, Base, utc_now
from crudforge.infrastructure.database.engine import create_db_engine, init_database
from crudforge.infrastructure.database.tracking import ChangeTracker, tracker_for

__all__ = [
    "AuditableMixin",
    "Base",
    "ChangeTracker",
    "create_db_engine",
    "init_database",
    "tracker_for",
    "utc_now",
]
