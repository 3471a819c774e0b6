"""AppContext: shared Click context for every command.

Created once by the root group and passed down with ``@click.pass_obj``.
The database is opened lazily so ``--help`` and ``--version`` never touch
it.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import click

from crudforge.output.console import create_console
from crudforge.output.formatters import format_response

if TYPE_CHECKING:
    from rich.console import Console

    from crudforge.application.mediator import Mediator
    from crudforge.config.settings import CrudforgeSettings
    from crudforge.domain.response import Response
    from crudforge.infrastructure.scope import Database


class AppContext:
    def __init__(self, settings: CrudforgeSettings) -> None:
        self.settings = settings
        self._database: Database | None = None
        self._console: Console | None = None

        from crudforge.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose,
            log_json=settings.log_json,
            sql_echo=settings.database.echo,
        )

        if settings.verbose:
            from crudforge.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def database(self) -> Database:
        if self._database is None:
            from crudforge.infrastructure.scope import Database

            self._database = Database.from_settings(self.settings)
        return self._database

    @property
    def console(self) -> Console:
        if self._console is None:
            self._console = create_console()
        return self._console

    @contextmanager
    def mediator(self) -> Generator[Mediator]:
        """A Value mediator bound to a fresh request scope."""
        from crudforge.features.values import build_value_mediator

        with self.database.scope() as scope:
            yield build_value_mediator(scope)

    def emit(self, response: Response[Any]) -> None:
        """Print the JSON envelope; a failure goes to stderr and exits 1."""
        output = format_response(response)
        if response.succeeded:
            click.echo(output)
            return
        click.echo(output, err=True)
        raise SystemExit(1)

    def close(self) -> None:
        if self._database is not None:
            self._database.dispose()
            self._database = None
