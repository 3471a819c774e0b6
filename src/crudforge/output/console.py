"""Rich console and progress helpers for the CLI.

Consoles write to stderr so that piped stdout stays pure JSON.  In non-TTY
environments (tests, pipes) Rich disables color codes and live rendering.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn
from rich.theme import Theme

from crudforge.domain.bulk import BulkProgress, ProgressCallback

CRUDFORGE_THEME = Theme(
    {
        "cf.ok": "bold green",
        "cf.error": "bold red",
        "cf.warning": "bold yellow",
        "cf.path": "dim",
        "cf.count": "bold blue",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a stderr Console with the crudforge theme.

    Args:
        no_color: Disable ANSI escape codes.
        width: Override terminal width.
    """
    return Console(
        stderr=True,
        theme=CRUDFORGE_THEME,
        no_color=no_color,
        highlight=False,
        width=width,
    )


@contextmanager
def bulk_progress(console: Console, description: str) -> Generator[ProgressCallback]:
    """Yield a bulk progress callback that drives a Rich progress bar."""
    columns = (
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
    )
    with Progress(*columns, console=console, transient=True) as progress:
        task = progress.add_task(description, total=None)

        def report(update: BulkProgress) -> None:
            progress.update(task, total=update.total_records, completed=update.processed_records)

        yield report
