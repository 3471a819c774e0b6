"""Predicate, selector, include and ordering contracts.

Callers describe *what* to read without the repositories knowing the
entity's shape:

- ``Predicate``: a SQLAlchemy boolean expression, e.g. ``Value.name == "x"``.
  Filtering always runs in the database.
- ``Include``: ``Select -> Select``; adds loader options or joins.
- ``OrderBy``: ``Select -> Select``; see :func:`order_by`.
- ``Selector``: a :class:`Projection` (evaluated in the database) or a
  plain ``entity -> result`` callable (evaluated after loading).
- ``KeySelector``: one mapped column attribute, or a tuple of them, naming
  the identity used by bulk conflict detection.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, Select, tuple_
from sqlalchemy.orm import InstrumentedAttribute

type Predicate = ColumnElement[bool]
type Include = Callable[[Select[Any]], Select[Any]]
type OrderBy = Callable[[Select[Any]], Select[Any]]
type KeySelector = InstrumentedAttribute[Any] | tuple[InstrumentedAttribute[Any], ...]


@dataclass(frozen=True)
class Projection[R]:
    """A store-side projection: the columns to select and a row factory.

    ``factory`` receives the selected values positionally::

        Projection((Value.id, Value.name), lambda id_, name: Summary(id_, name))
    """

    columns: tuple[ColumnElement[Any] | InstrumentedAttribute[Any], ...]
    factory: Callable[..., R]

    def build(self, row: Sequence[Any]) -> R:
        return self.factory(*row)


type Selector[E, R] = Projection[R] | Callable[[E], R]


def order_by(*clauses: Any) -> OrderBy:
    """Build an :data:`OrderBy` from column clauses (``Value.name.desc()`` etc.)."""

    def apply(stmt: Select[Any]) -> Select[Any]:
        return stmt.order_by(*clauses)

    return apply


# ------------------------------------------------------------------
# Key selector helpers
# ------------------------------------------------------------------


def key_columns(selector: KeySelector) -> tuple[InstrumentedAttribute[Any], ...]:
    if isinstance(selector, tuple):
        return selector
    return (selector,)


def key_of(entity: Any, selector: KeySelector) -> Any:
    """Return the key value of *entity*: a scalar, or a tuple for composite keys."""
    columns = key_columns(selector)
    if len(columns) == 1:
        return getattr(entity, columns[0].key)
    return tuple(getattr(entity, col.key) for col in columns)


def key_filter(selector: KeySelector, keys: Sequence[Any]) -> ColumnElement[bool]:
    """SQL ``IN`` filter matching rows whose key is in *keys*."""
    columns = key_columns(selector)
    if len(columns) == 1:
        return columns[0].in_(keys)
    return tuple_(*columns).in_(keys)
