"""Guarded handler base shared by every command and query handler.

``handle`` is the only public operation.  It runs ``_handle`` and turns any
exception into ``Response.fail(SYSTEM_ERROR)``, so nothing raises past the
handler boundary.  The scope's session is rolled back on the way out, so
the next handler in the same scope starts from a clean transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError

from crudforge.cancellation import CancellationToken
from crudforge.domain.messages import ErrorCode
from crudforge.domain.response import Response
from crudforge.infrastructure.repositories.read import ReadRepository
from crudforge.telemetry import get_current_span, traced

log = structlog.get_logger(__name__)


class Handler[M, R](ABC):
    """One message type in, one Response out."""

    _reads: ReadRepository[Any] | None = None

    @traced
    def handle(self, message: M | None, *, cancel: CancellationToken | None = None) -> Response[R]:
        span = get_current_span()
        if span is not None:
            span.annotate("handler", type(self).__name__)
        try:
            return self._handle(message, cancel)
        except Exception:
            log.exception("handler.failed", handler=type(self).__name__)
            self._rollback()
            return Response.fail(ErrorCode.SYSTEM_ERROR)

    @abstractmethod
    def _handle(self, message: M | None, cancel: CancellationToken | None) -> Response[Any]:
        """Run the handler's step sequence; may raise."""

    def _rollback(self) -> None:
        if self._reads is None:
            return
        try:
            self._reads.session.rollback()
        except SQLAlchemyError:
            log.exception("handler.rollback_failed", handler=type(self).__name__)


def invalid_input() -> Response[Any]:
    return Response.fail(ErrorCode.INVALID_INPUT_DATA)
