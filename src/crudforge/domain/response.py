"""Response envelope: the universal handler return type.

INVARIANT: every public handler operation returns a Response and never
raises.  ``succeeded=False`` implies ``data is None`` with ``message`` and
``code`` taken from :data:`~crudforge.domain.messages.CATALOG`.

Wire shape (``model_dump()``)::

    {"succeeded": bool, "data": T | None, "message": str, "code": str, "errors": []}
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from crudforge.domain.messages import ErrorCode, SuccessCode, lookup

T = TypeVar("T")

DEFAULT_SUCCESS_MESSAGE = "Succeeded"


class Response(BaseModel, Generic[T]):
    """Uniform envelope for command and query results.

    Attributes:
        succeeded: Whether the operation succeeded.  Callers branch on this.
        data: Payload on success, ``None`` on failure.
        message: Display text from the catalog (or a caller override).
        code: Catalog code as a string, e.g. ``"10101"``.
        errors: Extra error detail, e.g. validation messages.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    succeeded: bool
    data: T | None = None
    message: str = ""
    code: str = ""
    errors: list[Any] = Field(default_factory=list)

    @classmethod
    def success(
        cls,
        data: Any = None,
        code: SuccessCode | None = None,
        *,
        message: str | None = None,
    ) -> Response[Any]:
        if code is None:
            return cls(
                succeeded=True,
                data=data,
                message=message or DEFAULT_SUCCESS_MESSAGE,
            )
        record = lookup(code)
        return cls(
            succeeded=True,
            data=data,
            message=message or record.message,
            code=str(record.code),
        )

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        *,
        message: str | None = None,
        errors: list[Any] | None = None,
    ) -> Response[Any]:
        record = lookup(code)
        return cls(
            succeeded=False,
            data=None,
            message=message or record.message,
            code=str(record.code),
            errors=list(errors or []),
        )

    def is_error(self, code: ErrorCode) -> bool:
        """True when this is a failure tagged with *code*."""
        return not self.succeeded and self.code == str(int(code))
