"""Pagination helpers for list endpoints."""

import math

from fastapi import Query, Response
from pydantic import BaseModel


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=20&sort=created_at&order=desc`."""

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=20, ge=1, le=200, description="Items per page"),
        sort: str = Query(default="created_at", description="Sort field (snake_case column)"),
        order: str = Query(default="desc", pattern="^(asc|desc)$", description="Sort order"),
    ):
        self.page = page
        self.limit = limit
        self.sort = sort
        self.order = order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    pages: int

    model_config = {"populate_by_name": True}


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 1


def set_pagination_headers(response: Response, total: int, page: int, limit: int) -> None:
    """Expose paging info as headers (listed in the CORS expose list)."""
    response.headers["X-Total-Count"] = str(total)
    response.headers["X-Page-Count"] = str(page_count(total, limit))
    response.headers["X-Current-Page"] = str(page)
    response.headers["X-Per-Page"] = str(limit)
