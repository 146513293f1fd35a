"""
Success envelopes.

Every successful response wraps its payload::

    {"data": {...}}                                  single resource
    {"data": [...], "meta": {page, per_page, ...}}   paginated list

Creation routes answer 201, deletion routes 204 with an empty body
(:func:`no_content`), everything else 200.
"""

from typing import Generic, List, TypeVar

from pydantic import BaseModel, Field
from starlette.responses import Response

T = TypeVar("T")


class PaginationMeta(BaseModel):
    total: int = Field(..., examples=[100])
    page: int = Field(..., examples=[1])
    per_page: int = Field(..., examples=[10])
    total_pages: int = Field(..., examples=[10])


class DataResponse(BaseModel, Generic[T]):
    data: T


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    meta: PaginationMeta


def envelope(data: T) -> DataResponse[T]:
    """``{"data": data}`` for a single resource or an unpaginated list."""
    return DataResponse(data=data)


def paginated(items: List[T], total: int, page: int, per_page: int) -> PaginatedResponse[T]:
    """``{"data": items, "meta": {...}}`` with ``total_pages`` rounded up."""
    total_pages = (total + per_page - 1) // per_page
    return PaginatedResponse(
        data=items,
        meta=PaginationMeta(total=total, page=page, per_page=per_page, total_pages=total_pages),
    )


def no_content() -> Response:
    """Empty 204 response for deletions."""
    return Response(status_code=204)
