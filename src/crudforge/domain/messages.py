"""Closed message taxonomy: numbered error and success codes.

The catalog maps every code to a :class:`MessageRecord` and is built once at
import time.  Codes are stable; the human-readable text is display-only.

Ranges:
- Errors  10000-10699, one block of 100 per :class:`ErrorCategory`
- Success 20000-20399, one block of 100 per :class:`SuccessCategory`
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import IntEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field

# ── Categories ───────────────────────────────────────────────────────


class ErrorCategory(IntEnum):
    """Base code of each error block."""

    DATABASE = 10000
    VALIDATION = 10100
    BUSINESS_LOGIC = 10200
    AUTHENTICATION = 10300
    EXTERNAL_SERVICE = 10400
    FILE_OPERATION = 10500
    SYSTEM = 10600


class SuccessCategory(IntEnum):
    """Base code of each success block."""

    DATA = 20000
    ACCOUNT = 20100
    FILE = 20200
    GENERAL = 20300


# ── Codes ────────────────────────────────────────────────────────────


class ErrorCode(IntEnum):
    # Database operations
    FAIL_ON_GET = 10001
    FAIL_ON_CREATE = 10002
    FAIL_ON_UPDATE = 10003
    FAIL_ON_DELETE = 10004
    NOT_FOUND_DATA = 10005

    # Validation
    EXIST_ON_CREATE = 10101
    NOT_EXIST_ON_CREATE = 10102
    NOT_EXIST_ON_UPDATE = 10103
    INVALID_INPUT_DATA = 10104
    REQUIRED_FIELD = 10105
    INVALID_DATA_FORMAT = 10106
    EXCEEDED_MAX_LENGTH = 10107
    OUT_OF_RANGE = 10108

    # Business logic
    THIS_STATUS_NOT_FOUND = 10201
    INVALID_OPERATION_FOR_CURRENT_STATUS = 10202
    BUSINESS_RULE_VIOLATION = 10203
    INSUFFICIENT_PERMISSIONS = 10204
    DUPLICATE_OPERATION = 10205

    # Authentication
    AUTHENTICATION_FAILED = 10301
    SESSION_EXPIRED = 10302
    ACCESS_DENIED = 10303
    USER_INACTIVE = 10304
    USER_BLOCKED = 10305

    # External services
    EXTERNAL_SERVICE_FAILURE = 10401
    SERVICE_TIMEOUT = 10402
    SERVICE_UNAVAILABLE = 10403
    RESPONSE_PROCESSING_FAILED = 10404

    # File operations
    FILE_UPLOAD_FAILED = 10501
    UNSUPPORTED_FILE_TYPE = 10502
    FILE_SIZE_EXCEEDED = 10503
    FILE_NOT_FOUND = 10504
    FILE_PROCESSING_FAILED = 10505

    # System
    SYSTEM_ERROR = 10601
    INSUFFICIENT_MEMORY = 10602
    DATABASE_ERROR = 10603
    NETWORK_ERROR = 10604
    SERVER_BUSY = 10605


class SuccessCode(IntEnum):
    SUCCESS_ON_GET = 20001
    SUCCESS_ON_CREATE = 20002
    SUCCESS_ON_UPDATE = 20003
    SUCCESS_ON_DELETE = 20004

    LOGIN_SUCCESS = 20101
    LOGOUT_SUCCESS = 20102
    ACCOUNT_CREATED = 20103
    PASSWORD_UPDATED = 20104

    FILE_UPLOADED = 20201
    FILE_DELETED = 20202
    FILE_PROCESSED = 20203

    OPERATION_SUCCESS = 20301
    DATA_SAVED = 20302
    DATA_SENT = 20303


type MessageCode = ErrorCode | SuccessCode

_MESSAGES: dict[MessageCode, str] = {
    ErrorCode.FAIL_ON_GET: "Failed to retrieve the data.",
    ErrorCode.FAIL_ON_CREATE: "Failed to create the record.",
    ErrorCode.FAIL_ON_UPDATE: "Failed to update the record.",
    ErrorCode.FAIL_ON_DELETE: "Failed to delete the record.",
    ErrorCode.NOT_FOUND_DATA: "No data was found.",
    ErrorCode.EXIST_ON_CREATE: "The record already exists.",
    ErrorCode.NOT_EXIST_ON_CREATE: "A related record required for creation does not exist.",
    ErrorCode.NOT_EXIST_ON_UPDATE: "The record to update does not exist.",
    ErrorCode.INVALID_INPUT_DATA: "The input data is invalid.",
    ErrorCode.REQUIRED_FIELD: "A required field is missing.",
    ErrorCode.INVALID_DATA_FORMAT: "The data format is invalid.",
    ErrorCode.EXCEEDED_MAX_LENGTH: "A value exceeds the maximum allowed length.",
    ErrorCode.OUT_OF_RANGE: "A value is outside the allowed range.",
    ErrorCode.THIS_STATUS_NOT_FOUND: "The requested status does not exist.",
    ErrorCode.INVALID_OPERATION_FOR_CURRENT_STATUS: (
        "The operation is not allowed in the record's current status."
    ),
    ErrorCode.BUSINESS_RULE_VIOLATION: "The operation violates a business rule.",
    ErrorCode.INSUFFICIENT_PERMISSIONS: "You do not have permission for this operation.",
    ErrorCode.DUPLICATE_OPERATION: "The operation was already performed.",
    ErrorCode.AUTHENTICATION_FAILED: "Authentication failed.",
    ErrorCode.SESSION_EXPIRED: "The session has expired.",
    ErrorCode.ACCESS_DENIED: "Access denied.",
    ErrorCode.USER_INACTIVE: "The user account is inactive.",
    ErrorCode.USER_BLOCKED: "The user account is blocked.",
    ErrorCode.EXTERNAL_SERVICE_FAILURE: "An external service failed.",
    ErrorCode.SERVICE_TIMEOUT: "The service timed out.",
    ErrorCode.SERVICE_UNAVAILABLE: "The service is unavailable.",
    ErrorCode.RESPONSE_PROCESSING_FAILED: "Failed to process the service response.",
    ErrorCode.FILE_UPLOAD_FAILED: "The file upload failed.",
    ErrorCode.UNSUPPORTED_FILE_TYPE: "The file type is not supported.",
    ErrorCode.FILE_SIZE_EXCEEDED: "The file exceeds the maximum allowed size.",
    ErrorCode.FILE_NOT_FOUND: "The file was not found.",
    ErrorCode.FILE_PROCESSING_FAILED: "Failed to process the file.",
    ErrorCode.SYSTEM_ERROR: "An unexpected system error occurred.",
    ErrorCode.INSUFFICIENT_MEMORY: "The system ran out of memory.",
    ErrorCode.DATABASE_ERROR: "A database error occurred.",
    ErrorCode.NETWORK_ERROR: "A network error occurred.",
    ErrorCode.SERVER_BUSY: "The server is busy, try again later.",
    SuccessCode.SUCCESS_ON_GET: "Data retrieved successfully.",
    SuccessCode.SUCCESS_ON_CREATE: "Record created successfully.",
    SuccessCode.SUCCESS_ON_UPDATE: "Record updated successfully.",
    SuccessCode.SUCCESS_ON_DELETE: "Record deleted successfully.",
    SuccessCode.LOGIN_SUCCESS: "Signed in successfully.",
    SuccessCode.LOGOUT_SUCCESS: "Signed out successfully.",
    SuccessCode.ACCOUNT_CREATED: "Account created successfully.",
    SuccessCode.PASSWORD_UPDATED: "Password updated successfully.",
    SuccessCode.FILE_UPLOADED: "File uploaded successfully.",
    SuccessCode.FILE_DELETED: "File deleted successfully.",
    SuccessCode.FILE_PROCESSED: "File processed successfully.",
    SuccessCode.OPERATION_SUCCESS: "Operation completed successfully.",
    SuccessCode.DATA_SAVED: "Data saved successfully.",
    SuccessCode.DATA_SENT: "Data sent successfully.",
}


# ── Catalog ──────────────────────────────────────────────────────────


class MessageRecord(BaseModel):
    """One catalog entry."""

    model_config = {"frozen": True}

    code: int
    message: str
    category: str


def category_of(code: int) -> ErrorCategory | SuccessCategory | None:
    """Return the category whose 100-code block contains *code*."""
    base = code - code % 100
    for enum in (ErrorCategory, SuccessCategory):
        try:
            return enum(base)
        except ValueError:
            continue
    return None


def _build_catalog() -> Mapping[int, MessageRecord]:
    catalog: dict[int, MessageRecord] = {}
    for code, message in _MESSAGES.items():
        category = category_of(code)
        assert category is not None, f"code {code} outside every category"
        catalog[int(code)] = MessageRecord(
            code=int(code),
            message=message,
            category=category.name,
        )
    return MappingProxyType(catalog)


CATALOG: Mapping[int, MessageRecord] = _build_catalog()


def lookup(code: int) -> MessageRecord:
    """Return the catalog record for *code*.

    Raises:
        KeyError: *code* is not part of either taxonomy.
    """
    return CATALOG[int(code)]


def codes_in_category(category: ErrorCategory | SuccessCategory) -> list[int]:
    """All catalog codes in *category*, ascending."""
    return sorted(code for code in CATALOG if is_in_category(code, category))


def is_in_category(code: int, category: ErrorCategory | SuccessCategory) -> bool:
    return int(category) <= int(code) <= int(category) + 99


# ── Error report ─────────────────────────────────────────────────────


class ErrorReport(BaseModel):
    """Detailed, timestamped description of one error code occurrence."""

    model_config = {"frozen": True}

    code: int
    message: str
    category: str
    details: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        *,
        details: str | None = None,
        request_id: str | None = None,
    ) -> ErrorReport:
        record = lookup(code)
        extra: dict[str, Any] = {}
        if request_id is not None:
            extra["request_id"] = request_id
        return cls(
            code=record.code,
            message=record.message,
            category=record.category,
            details=details,
            **extra,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "request_id": self.request_id,
        }
