"""
Pagination helpers shared by the list endpoints.

Query values are read as raw strings so that garbage input degrades to the
defaults instead of failing validation.
"""

import math
from dataclasses import dataclass
from typing import Optional

from fastapi import Query

from restaurant_api.core.config import get_settings
from restaurant_api.schemas import Pagination


@dataclass
class PaginationParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_positive_int(raw: Optional[str], default: int) -> int:
    """Parse a positive integer, falling back to `default` on bad input."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value >= 1 else default


def resolve_pagination(page: Optional[str], limit: Optional[str]) -> PaginationParams:
    settings = get_settings()
    page_value = parse_positive_int(page, 1)
    limit_value = min(
        parse_positive_int(limit, settings.default_page_limit),
        settings.max_page_limit,
    )
    return PaginationParams(page=page_value, limit=limit_value)


def get_pagination_params(
    page: Optional[str] = Query(None, description="Page number, starting at 1"),
    limit: Optional[str] = Query(None, description="Records per page"),
) -> PaginationParams:
    """FastAPI dependency for `?page=&limit=`."""
    return resolve_pagination(page, limit)


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
        next_page=page + 1,
        prev_page=page - 1,
    )
