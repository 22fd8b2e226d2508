"""
Standardized page-based pagination parameters for list endpoints.
"""

import math
from typing import Annotated

from fastapi import Query

PaginationSkip = Annotated[int, Query(ge=0, description="Number of records to skip")]
PaginationPage = Annotated[int, Query(ge=1, description="Page number (1-based)")]
PaginationLimit = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of records per page")
]
NearbyLimit = Annotated[
    int, Query(ge=1, le=100, description="Maximum number of reports to return")
]


def page_to_offset(page: int, limit: int) -> int:
    """Convert a 1-based page number into a row offset."""
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    """
    Build the pagination envelope returned by list endpoints.

    Args:
        page: Current page (1-based)
        limit: Page size
        total: Total matching rows

    Returns:
        Dict with page, limit, total, total_pages, has_next and has_prev
    """
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
