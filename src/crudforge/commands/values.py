"""Command group: the Value feature (add, list, import, export)."""

from __future__ import annotations

import base64
import csv
import uuid
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from pydantic import ValidationError

from crudforge.commands._base import CrudGroup

if TYPE_CHECKING:
    from crudforge.commands._context import AppContext
    from crudforge.features.values import Value

_VALUES_EXAMPLES = """\
  crudforge values add Alpha 5
  crudforge values list --name Al --page 2
  crudforge values import values.csv --batch-size 500
  crudforge values export --format xlsx --output values.xlsx"""


@click.group(cls=CrudGroup, examples=_VALUES_EXAMPLES)
def values() -> None:
    """Create, list, import and export values."""


def _build[M](factory: Callable[..., M], **fields: Any) -> M:
    """Construct a message, turning validation errors into usage errors."""
    try:
        return factory(**fields)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        )
        raise click.UsageError(details) from exc


@values.command(examples="  crudforge values add Alpha 5")
@click.argument("name")
@click.argument("number", type=int)
@click.pass_obj
def add(app: AppContext, name: str, number: int) -> None:
    """Create one value."""
    from crudforge.features.values import CreateValueCommand

    command = _build(CreateValueCommand, name=name, value_number=number)
    with app.mediator() as mediator:
        app.emit(mediator.send(command))


@values.command(
    "list",
    examples="""\
  crudforge values list
  crudforge values list --name Al --page-size 20
  crudforge values list --status 1 --created-from 2025-01-01""",
)
@click.option("--name", default=None, help="Only names containing this text.")
@click.option("--status", "status_id", type=int, default=None, help="Only this status id.")
@click.option("--created-from", type=click.DateTime(), default=None, help="Created on/after.")
@click.option("--created-to", type=click.DateTime(), default=None, help="Created on/before.")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=10, show_default=True)
@click.pass_obj
def list_values(
    app: AppContext,
    name: str | None,
    status_id: int | None,
    created_from: datetime | None,
    created_to: datetime | None,
    page: int,
    page_size: int,
) -> None:
    """List values, newest first, one page at a time."""
    from crudforge.features.values import GetListValueQuery

    query = _build(
        GetListValueQuery,
        name=name,
        status_id=status_id,
        created_from=created_from,
        created_to=created_to,
        page=page,
        page_size=page_size,
    )
    with app.mediator() as mediator:
        app.emit(mediator.send(query))


def _row_to_value(row: dict[str, str]) -> Value:
    from crudforge.features.values import Value

    return Value(
        id=uuid.uuid4(),
        name=row["name"].strip(),
        value_number=int(row["value_number"]),
    )


@values.command(
    "import",
    examples="""\
  crudforge values import values.csv
  crudforge values import values.csv --batch-size 500""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--batch-size", type=click.IntRange(min=1), default=None, help="Rows per commit.")
@click.pass_obj
def import_values(app: AppContext, file: Path, batch_size: int | None) -> None:
    """Bulk-import a CSV file with ``name`` and ``value_number`` columns."""
    from crudforge.application.hooks import bulk_errors
    from crudforge.domain.messages import ErrorCode, SuccessCode
    from crudforge.domain.response import Response
    from crudforge.features.values import Value
    from crudforge.output.console import bulk_progress

    options = app.settings.bulk.to_options()
    if batch_size is not None:
        options = options.model_copy(update={"batch_size": batch_size})

    with file.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))

    with app.database.scope() as scope, bulk_progress(app.console, "Importing") as progress:
        result = scope.bulk(Value).bulk_import_from_source(
            rows, _row_to_value, Value.id, options, progress
        )

    if result.is_success:
        app.emit(Response.success(result, SuccessCode.SUCCESS_ON_CREATE))
    else:
        app.emit(Response.fail(ErrorCode.FAIL_ON_CREATE, errors=bulk_errors(result)))


@values.command(
    "export",
    examples="""\
  crudforge values export
  crudforge values export --format xlsx --output report.xlsx""",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["csv", "xlsx"], case_sensitive=False),
    default="csv",
    show_default=True,
)
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.option("--created-from", type=click.DateTime(), default=None)
@click.option("--created-to", type=click.DateTime(), default=None)
@click.pass_obj
def export_values(
    app: AppContext,
    fmt: str,
    output: Path | None,
    created_from: datetime | None,
    created_to: datetime | None,
) -> None:
    """Export values created in a window to CSV or Excel."""
    from crudforge.features.values import ExportValuesCsvQuery, ExportValuesExcelQuery

    factory = ExportValuesExcelQuery if fmt.lower() == "xlsx" else ExportValuesCsvQuery
    query = _build(factory, created_from=created_from, created_to=created_to)
    with app.mediator() as mediator:
        response = mediator.send(query)

    if not response.succeeded:
        app.emit(response)
        return
    if not response.data:
        app.console.print("[cf.warning]Nothing to export.[/]")
        return

    target = output or app.settings.export.directory / f"values.{fmt.lower()}"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(base64.b64decode(response.data))
    app.console.print(f"[cf.ok]Exported[/] [cf.path]{target}[/]")
