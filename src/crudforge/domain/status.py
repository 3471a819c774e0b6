"""Entity lifecycle status and the status capability.

Entities opt into lifecycle semantics by exposing a ``status_id`` attribute.
Handlers check for the capability with ``isinstance(entity, StatusEntity)``
and leave entities without it untouched.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Protocol, runtime_checkable


class Status(IntEnum):
    """Lifecycle states moved by handler-level convention."""

    UNVERIFIED = 0
    VERIFIED = 1
    ACTIVE = 2
    INACTIVE = 3
    DELETED = 4

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES: dict[Status, str] = {
    Status.UNVERIFIED: "Unverified",
    Status.VERIFIED: "Verified",
    Status.ACTIVE: "Active",
    Status.INACTIVE: "Inactive",
    Status.DELETED: "Deleted",
}


@runtime_checkable
class StatusEntity(Protocol):
    """Capability: the entity carries a readable/writable lifecycle status."""

    status_id: int


def status_name(value: int | None) -> str | None:
    """Return the display name for a raw status value, or None if unknown."""
    if value is None:
        return None
    try:
        return Status(value).display_name
    except ValueError:
        return None


def _apply(entity: Any, status: Status) -> None:
    if isinstance(entity, StatusEntity):
        entity.status_id = int(status)


def mark_unverified(entity: Any) -> None:
    """Initial status for newly created entities."""
    _apply(entity, Status.UNVERIFIED)


def mark_verified(entity: Any) -> None:
    """Status transition applied by update handlers."""
    _apply(entity, Status.VERIFIED)
