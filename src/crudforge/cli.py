"""Root CLI group for crudforge with global flags and command registration."""

from __future__ import annotations

import click

from crudforge import __version__
from crudforge.commands import register_commands
from crudforge.commands._context import AppContext
from crudforge.config.settings import CrudforgeSettings


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="crudforge")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and telemetry spans.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_json: bool, config_path: str | None) -> None:
    """crudforge: generic CRUD and bulk data access from the command line."""
    settings = CrudforgeSettings.from_cli(
        config_path=config_path,
        verbose=verbose,
        log_json=log_json,
    )
    app = AppContext(settings)
    ctx.obj = app
    ctx.call_on_close(app.close)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
