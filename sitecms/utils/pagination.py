"""
Pagination Utilities

Offset pagination helpers shared by the list endpoints. Every list
response carries ``{totalData, page, limit, totalPage}``.
"""

import math

from sitecms.schemas.common import Pagination

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def normalize_page(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page/limit query values to usable numbers."""
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, min(limit, MAX_LIMIT)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    return Pagination(
        totalData=total,
        page=page,
        limit=limit,
        totalPage=math.ceil(total / limit) if limit else 0,
    )
