"""Engine construction and schema initialization.

SQLite connections get WAL mode and foreign keys switched on.  The pysqlite
driver's implicit transaction handling is disabled and ``BEGIN`` is emitted
by SQLAlchemy instead, so SAVEPOINTs (used for bulk row isolation) behave.
Any other SQLAlchemy URL is passed through untouched.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine

from crudforge.config.models import DatabaseConfig
from crudforge.infrastructure.database.base import Base


def create_db_engine(config: DatabaseConfig | str | None = None) -> Engine:
    """Create an engine from a :class:`DatabaseConfig` or a bare URL."""
    if config is None:
        config = DatabaseConfig()
    elif isinstance(config, str):
        config = DatabaseConfig(url=config)

    engine = create_engine(config.url, echo=config.echo)
    if engine.dialect.name == "sqlite":
        _configure_sqlite(engine, wal=config.sqlite_wal)
    return engine


def _configure_sqlite(engine: Engine, *, wal: bool) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")


def init_database(config: DatabaseConfig | str | None = None) -> Engine:
    """Create the engine and every table registered on :data:`Base.metadata`.

    Idempotent; safe to call against an existing database.  Entity modules
    must be imported first so their tables are registered.
    """
    engine = create_db_engine(config)
    Base.metadata.create_all(engine)
    return engine
