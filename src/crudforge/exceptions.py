"""Internal exception hierarchy.

Repositories raise these; handlers catch everything at their boundary and
translate it into a :class:`~crudforge.domain.response.Response`.
"""

from __future__ import annotations


class CrudforgeError(Exception):
    """Base class for every error raised by crudforge."""


class NotFoundError(CrudforgeError):
    """A find or primary-key lookup matched no row."""

    def __init__(self, message: str = "No entity found matching the criteria.") -> None:
        super().__init__(message)


class OperationCancelledError(CrudforgeError):
    """The caller's cancellation token was set before a store round-trip."""

    def __init__(self, message: str = "The operation was cancelled.") -> None:
        super().__init__(message)


class BulkOperationError(CrudforgeError):
    """A bulk run failed at row level or aborted as a whole."""


class DuplicateKeyError(BulkOperationError):
    """An incoming row collided with an existing key under THROW_ERROR."""

    def __init__(self, key: object) -> None:
        super().__init__(f"An entity with key {key!r} already exists.")
        self.key = key


class BulkTimeoutError(BulkOperationError):
    """The bulk run exceeded ``BulkInsertOptions.timeout_seconds``."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"Bulk operation exceeded its timeout of {timeout_seconds}s.")
        self.timeout_seconds = timeout_seconds


class HandlerRegistrationError(CrudforgeError):
    """A command or query type was registered with a second handler."""


class HandlerNotFoundError(CrudforgeError):
    """No handler is registered for the message type sent to the mediator."""
