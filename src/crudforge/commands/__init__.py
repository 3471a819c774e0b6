"""Subcommand modules for crudforge.

:func:`register_commands` imports lazily so ``crudforge --help`` stays fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    from crudforge.commands.db import db
    from crudforge.commands.values import values

    cli.add_command(db)
    cli.add_command(values)
