"""Cooperative cancellation for repository and handler calls.

Operations accept ``cancel: CancellationToken | None`` and call
:func:`check_cancelled` before every store round-trip.  Setting the token
never interrupts a statement already running; it stops the next one.
"""

from __future__ import annotations

import threading

from crudforge.exceptions import OperationCancelledError


class CancellationToken:
    """Thread-safe flag a caller sets to abandon an in-flight operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()


def check_cancelled(cancel: CancellationToken | None) -> None:
    """Raise :class:`OperationCancelledError` when *cancel* is set."""
    if cancel is not None:
        cancel.raise_if_cancelled()
