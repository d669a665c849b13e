"""
Standard API response envelope used by every router and error handler.
"""

import math
from typing import Any


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None) -> dict:
    return {"success": False, "data": data, "message": message}


def paginated_response(items: list, page: int, page_size: int, total: int | None) -> dict:
    """Wrap one page of rows together with the paging metadata the admin lists need."""
    total = total if total is not None else len(items)
    return success_response(data={
        "items": items,
        "page": page,
        "page_size": page_size,
        "total": total,
        "total_pages": max(1, math.ceil(total / page_size)) if page_size else 1,
    })
