"""Pagination query shape and the page container returned by services."""

from dataclasses import dataclass
from typing import Generic, List, TypeVar

from app.core.config import settings
from app.validation import Int32, Shape, constraint

T = TypeVar("T")


class PaginationQuery(Shape):
    """``?page=&per_page=`` — 1-based page number and page size."""

    page: Int32 = 1
    per_page: Int32 = settings.DEFAULT_PER_PAGE

    __constraints__ = (
        constraint("page", "range", "Page must be at least 1", min=1),
        constraint(
            "per_page",
            "range",
            f"Items per page must be between 1 and {settings.MAX_PER_PAGE}",
            min=1,
            max=settings.MAX_PER_PAGE,
        ),
    )

    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def limit(self) -> int:
        return self.per_page


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the unpaginated total."""

    items: List[T]
    total: int
