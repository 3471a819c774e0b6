"""Shared pytest fixtures and test helpers for crudforge tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

import tests.entities  # noqa: F401  (registers the test-only tables)
from crudforge.application.mediator import Mediator
from crudforge.features.values import Value, build_value_mediator
from crudforge.infrastructure.database.engine import init_database
from crudforge.infrastructure.scope import Database, RequestScope

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'crudforge.db'}"


@pytest.fixture
def db_engine(db_url: str) -> Generator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(db_url)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def database(db_engine: Engine) -> Database:
    return Database(db_engine)


@pytest.fixture
def scope(database: Database) -> Generator[RequestScope]:
    """One request scope (one session) for the duration of the test."""
    with database.scope() as s:
        yield s


@pytest.fixture
def mediator(scope: RequestScope) -> Mediator:
    """Value mediator bound to the test's request scope."""
    return build_value_mediator(scope)


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run CLI commands against a database file in a temp directory.

    Use via ``@pytest.mark.usefixtures("_isolated_cwd")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CRUDFORGE_CONFIG", raising=False)
    monkeypatch.setenv("CRUDFORGE_DATABASE__URL", f"sqlite:///{tmp_path / 'cli.db'}")


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def add_values(scope: RequestScope, *names: str, **kwargs: Any) -> list[Value]:
    """Insert one Value per name (value_number = position) and commit."""
    values = [
        Value(name=name, value_number=kwargs.get("value_number", index), **_audit(kwargs))
        for index, name in enumerate(names)
    ]
    scope.session.add_all(values)
    scope.session.commit()
    return values


def _audit(kwargs: dict[str, Any]) -> dict[str, Any]:
    return {key: kwargs[key] for key in ("created_at", "is_deleted", "status_id") if key in kwargs}


def value_count(scope: RequestScope) -> int:
    return scope.reads(Value).count()
