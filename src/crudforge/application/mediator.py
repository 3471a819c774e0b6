"""Mediator: routes each command/query type to exactly one handler.

Registration is explicit; there is no container, scanning or lifetime
management.  A second registration for the same message type is an error.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

from crudforge.cancellation import CancellationToken
from crudforge.exceptions import HandlerNotFoundError, HandlerRegistrationError

log = structlog.get_logger(__name__)


class SupportsHandle(Protocol):
    def handle(self, message: Any, *, cancel: CancellationToken | None = None) -> Any: ...


class Mediator:
    def __init__(self) -> None:
        self._handlers: dict[type, SupportsHandle] = {}

    def register(self, message_type: type, handler: SupportsHandle) -> None:
        """Bind *message_type* to *handler*.

        Raises:
            HandlerRegistrationError: *message_type* already has a handler.
        """
        if message_type in self._handlers:
            existing = type(self._handlers[message_type]).__name__
            msg = f"{message_type.__name__} is already handled by {existing}"
            raise HandlerRegistrationError(msg)
        self._handlers[message_type] = handler

    def registered_types(self) -> list[type]:
        return list(self._handlers)

    def send(self, message: Any, *, cancel: CancellationToken | None = None) -> Any:
        """Dispatch *message* to its handler and return the handler's result.

        Raises:
            HandlerNotFoundError: No handler is registered for its type.
        """
        handler = self._handlers.get(type(message))
        if handler is None:
            raise HandlerNotFoundError(f"No handler registered for {type(message).__name__}")
        with structlog.contextvars.bound_contextvars(message_type=type(message).__name__):
            log.debug("mediator.dispatch", handler=type(handler).__name__)
            return handler.handle(message, cancel=cancel)
