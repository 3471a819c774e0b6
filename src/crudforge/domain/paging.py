"""Pagination request and result models."""

from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class PagedQuery(BaseModel):
    """Mixin for queries that carry a page window."""

    model_config = {"frozen": True}

    page: int = Field(default=1, gt=0)
    page_size: int = Field(default=10, ge=1, le=100)


class PagedResult(BaseModel, Generic[T]):
    """One page of results plus the totals needed to navigate.

    ``total_pages`` is ``ceil(total_count / page_size)``.  A non-positive
    ``page_size`` means "unpaged": everything fits on a single page.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    data: list[T] = Field(default_factory=list)
    total_count: int = 0
    page_number: int = 1
    page_size: int = 10

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 1 if self.total_count > 0 else 0
        return math.ceil(self.total_count / self.page_size)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next_page(self) -> bool:
        return self.page_number < self.total_pages

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_previous_page(self) -> bool:
        return self.page_number > 1

    def map(self, func: Any) -> PagedResult[Any]:
        """Return a copy with *func* applied to every row."""
        return PagedResult(
            data=[func(row) for row in self.data],
            total_count=self.total_count,
            page_number=self.page_number,
            page_size=self.page_size,
        )
