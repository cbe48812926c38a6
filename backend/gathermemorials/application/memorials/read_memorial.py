from typing import List, Optional, Tuple
from sqlalchemy import update
from gathermemorials.extensions import db
from gathermemorials.models.memorial import Memorial
from gathermemorials.domain.exceptions import InvariantViolation
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.utils.transaction import transactional
from .access import assert_can_view, get_memorial, get_memorial_by_url

DRAFTS_SHOWN = 5
MAX_PER_PAGE = 100


def _record_view(memorial: Memorial) -> None:
    with transactional():
        # Incremented in SQL so concurrent readers do not lose counts.
        # updated_at is pinned so a view never counts as an edit.
        db.session.execute(
            update(Memorial)
            .where(Memorial.id == memorial.id)
            .values(view_count=Memorial.view_count + 1, updated_at=Memorial.updated_at)
            .execution_options(synchronize_session=False)
        )
    db.session.refresh(memorial)


def view_memorial(
    *,
    memorial_id: Optional[str] = None,
    custom_url: Optional[str] = None,
    user=None,
    password: Optional[str] = None,
) -> Tuple[Memorial, bool]:
    """
    Loads a memorial by id or custom URL through the privacy gate.

    Returns (memorial, is_owner). Visitor reads count as views.
    """
    if custom_url is not None:
        memorial = get_memorial_by_url(custom_url.lower())
    else:
        memorial = get_memorial(memorial_id)

    owner = assert_can_view(memorial, user, password)
    if not owner:
        _record_view(memorial)

    return memorial, owner


def parse_page(raw_page, raw_per_page, default_per_page: int = 20) -> Tuple[int, int]:
    try:
        page = int(raw_page) if raw_page is not None else 1
        per_page = int(raw_per_page) if raw_per_page is not None else default_per_page
    except (TypeError, ValueError):
        raise InvariantViolation("page and per_page must be integers")

    if page < 1 or per_page < 1:
        raise InvariantViolation("page and per_page must be positive")
    return page, min(per_page, MAX_PER_PAGE)


def list_memorials(
    *,
    owner,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[Memorial], int]:
    query = Memorial.query.filter(Memorial.user_id == owner.id)

    if status and status != "all":
        try:
            MemorialStatus(status)
        except ValueError:
            raise InvariantViolation(f"Invalid status filter: {status}")
        query = query.filter(Memorial.status == status)
    else:
        query = query.filter(Memorial.status != MemorialStatus.DELETED.value)

    total = query.count()
    items = (
        query.order_by(Memorial.updated_at.desc(), Memorial.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total


def list_drafts(*, owner) -> List[Memorial]:
    """The owner's most recently touched drafts, for "continue where you left off"."""
    return (
        Memorial.query
        .filter_by(user_id=owner.id, status=MemorialStatus.DRAFT.value)
        .order_by(Memorial.updated_at.desc())
        .limit(DRAFTS_SHOWN)
        .all()
    )
