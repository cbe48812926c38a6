# gathermemorials/normalizers/pagination.py
from typing import Callable, Any, List, Optional, Dict

from gathermemorials.utils.pagination import CursorMeta


def normalize_cursor_page(
    items: List[Any],
    normalize_fn: Callable[[Any], Dict[str, Any]],
    cursor: CursorMeta,
    *,
    key: str = "items",
) -> Dict[str, Any]:
    """Queue-style listing: the client follows next_cursor until has_more is false."""
    return {
        key: [normalize_fn(item) for item in items],
        "pagination": {
            "has_more": cursor["has_more"],
            "next_cursor": cursor["next_cursor"],
        },
    }


def normalize_offset_page(
    items: List[Any],
    normalize_fn: Callable[[Any], Dict[str, Any]],
    *,
    page: int,
    per_page: int,
    total: int,
    key: str = "items",
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Numbered pages for memorial and guestbook listings.

    total_pages is 0 for an empty listing.
    """
    response: Dict[str, Any] = {
        key: [normalize_fn(item) for item in items],
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": (total + per_page - 1) // per_page,
            "has_more": page * per_page < total,
        },
    }
    if extra:
        response.update(extra)
    return response
