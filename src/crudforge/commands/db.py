"""Command group: database maintenance."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from crudforge.commands._base import CrudGroup

if TYPE_CHECKING:
    from crudforge.commands._context import AppContext


@click.group(cls=CrudGroup, examples="  crudforge db init")
def db() -> None:
    """Database maintenance."""


@db.command("init")
@click.pass_obj
def init(app: AppContext) -> None:
    """Create every table that does not exist yet."""
    import crudforge.features.values  # noqa: F401  (registers the Value table)

    app.database.create_all()
    app.console.print(f"[cf.ok]Initialized[/] [cf.path]{app.settings.database.url}[/]")
