"""Column-level helpers for copying state between ORM instances."""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper


def value_columns(mapper: Mapper[Any]) -> list[str]:
    """Attribute keys of every mapped non-primary-key column."""
    pk = set(mapper.primary_key)
    return [attr.key for attr in mapper.column_attrs if not any(c in pk for c in attr.columns)]


def copy_columns(source: Any, target: Any, *, skip_none: bool) -> bool:
    """Copy non-key column values that are set on *source* onto *target*.

    Only attributes present in *source*'s state are copied, so columns a
    transient instance never assigned keep the target's value.  With
    *skip_none*, ``None`` values are left alone as well.  Returns True when
    anything on *target* changed.
    """
    if source is target:
        return True
    state = inspect(source)
    changed = False
    for key in value_columns(state.mapper):
        if key not in state.dict:
            continue
        value = state.dict[key]
        if value is None and skip_none:
            continue
        if getattr(target, key) != value:
            setattr(target, key, value)
            changed = True
    return changed
