# gathermemorials/utils/pagination.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple, TypedDict, Type, Any

from sqlalchemy.orm import Query
from sqlalchemy.sql import or_, and_

from gathermemorials.domain.exceptions import InvariantViolation
from gathermemorials.utils.optimistic_lock import normalize_ts

MAX_PAGE_SIZE = 100


class CursorMeta(TypedDict):
    has_more: bool
    next_cursor: Optional[str]


def clamp_limit(raw, default: int = 20) -> int:
    try:
        limit = int(raw) if raw is not None else default
    except (TypeError, ValueError):
        raise InvariantViolation("limit must be an integer")

    if limit <= 0:
        raise InvariantViolation("limit must be greater than zero")
    return min(limit, MAX_PAGE_SIZE)


def encode_cursor(created_at: datetime, row_id: Any) -> str:
    """
    Format: ISO8601|<id>
    """
    if not isinstance(created_at, datetime) or row_id is None:
        raise ValueError("created_at and row_id are required to encode cursor")

    return f"{normalize_ts(created_at).isoformat()}|{row_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    if not cursor or "|" not in cursor:
        raise InvariantViolation("Invalid cursor format")

    try:
        ts_str, row_id = cursor.split("|", 1)
        return normalize_ts(datetime.fromisoformat(ts_str)), row_id
    except ValueError as exc:
        raise InvariantViolation("Invalid cursor format") from exc


def paginate_by_created(
    query: Query,
    *,
    model: Type[Any],
    cursor: Optional[str],
    limit: int,
    newest_first: bool = False,
) -> tuple[list[Any], CursorMeta]:
    """
    Keyset pagination over (created_at, id).

    Ordering contract:
      ORDER BY created_at ASC, id ASC   (queues)
      ORDER BY created_at DESC, id DESC (activity feeds)

    Fetches limit + 1 rows to detect continuation; the cursor is taken from
    the last returned row.
    """
    if cursor:
        cursor_ts, cursor_id = decode_cursor(cursor)
        if newest_first:
            after = or_(
                model.created_at < cursor_ts,
                and_(model.created_at == cursor_ts, model.id < cursor_id),
            )
        else:
            after = or_(
                model.created_at > cursor_ts,
                and_(model.created_at == cursor_ts, model.id > cursor_id),
            )
        query = query.filter(after)

    if newest_first:
        ordering = (model.created_at.desc(), model.id.desc())
    else:
        ordering = (model.created_at.asc(), model.id.asc())

    rows = (
        query.order_by(*ordering)
        .limit(limit + 1)
        .all()
    )

    has_more = len(rows) > limit
    items = rows[:limit]

    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = encode_cursor(last.created_at, last.id)

    return items, {"has_more": has_more, "next_cursor": next_cursor}
