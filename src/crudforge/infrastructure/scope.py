"""Request scope: one Session shared by every repository of a request.

Usage::

    database = Database.from_settings(settings)
    with database.scope() as scope:
        values = scope.reads(Value)
        ...
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from crudforge.config.models import BulkConfig, DatabaseConfig, RepositoryConfig
from crudforge.config.settings import CrudforgeSettings
from crudforge.infrastructure.database.base import Base
from crudforge.infrastructure.database.engine import create_db_engine
from crudforge.infrastructure.repositories.bulk import BulkRepository
from crudforge.infrastructure.repositories.extension import ExtensionRepository
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.infrastructure.repositories.write import WriteRepository


class RequestScope:
    """Hands out repositories bound to one shared session."""

    def __init__(
        self,
        session: Session,
        *,
        repository: RepositoryConfig | None = None,
        bulk: BulkConfig | None = None,
    ) -> None:
        self.session = session
        self._repository = repository or RepositoryConfig()
        self._bulk = bulk or BulkConfig()

    def reads[E](self, entity: type[E]) -> ReadRepository[E]:
        return ReadRepository(self.session, entity, config=self._repository)

    def writes[E](self, entity: type[E]) -> WriteRepository[E]:
        return WriteRepository(self.session, entity, config=self._repository)

    def bulk[E](self, entity: type[E]) -> BulkRepository[E]:
        return BulkRepository(self.session, entity, config=self._bulk)

    def extensions[E](self, entity: type[E]) -> ExtensionRepository[E]:
        return ExtensionRepository(self.session, entity, config=self._repository)


class Database:
    """Engine plus session factory; the owner of connection pooling."""

    def __init__(
        self,
        engine: Engine,
        *,
        repository: RepositoryConfig | None = None,
        bulk: BulkConfig | None = None,
    ) -> None:
        self.engine = engine
        self._repository = repository or RepositoryConfig()
        self._bulk = bulk or BulkConfig()
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: CrudforgeSettings) -> Database:
        return cls(
            create_db_engine(settings.database),
            repository=settings.repository,
            bulk=settings.bulk,
        )

    @classmethod
    def from_url(cls, url: str) -> Database:
        return cls(create_db_engine(DatabaseConfig(url=url)))

    def create_all(self) -> None:
        """Create every table registered on :data:`Base.metadata`."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def scope(self) -> Generator[RequestScope]:
        """Open a session for one logical request; closed on exit."""
        session = self._sessions()
        try:
            yield RequestScope(session, repository=self._repository, bulk=self._bulk)
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
