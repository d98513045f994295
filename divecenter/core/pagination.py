"""
Pagination helpers for list endpoints
"""
import math
from typing import Callable, Optional

from sqlalchemy.orm import Query

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def paginate(query: Query, page: int = 1, per_page: int = DEFAULT_PER_PAGE,
             serializer: Optional[Callable] = None) -> dict:
    """
    Run a query one page at a time and wrap it in the list envelope
    {data, total, per_page, last_page, current_page}.
    """
    per_page = min(max(per_page, 1), MAX_PER_PAGE)
    page = max(page, 1)

    total = query.order_by(None).count()
    rows = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "data": [serializer(row) for row in rows] if serializer else rows,
        "total": total,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)),
        "current_page": page,
    }
