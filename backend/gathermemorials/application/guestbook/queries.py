from datetime import datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import func, or_
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.blocked_user import BlockedUser
from gathermemorials.models.guestbook_entry import GuestbookEntry
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.memorial_collaborator import MemorialCollaborator
from gathermemorials.domain.exceptions import InvariantViolation
from gathermemorials.domain.lifecycle.guestbook import EntryStatus
from gathermemorials.application.memorials.access import MODERATOR_ROLES, assert_can_view, can_moderate, get_memorial
from gathermemorials.utils.pagination import CursorMeta, paginate_by_created

STATUS_FILTERS = {"all"} | {status.value for status in EntryStatus}


def list_entries(
    *,
    memorial_id: str,
    user=None,
    password: Optional[str] = None,
    status: Optional[str] = None,
    page: int = 1,
    per_page: int = 20,
) -> Tuple[List[GuestbookEntry], int, bool]:
    """
    Guestbook entries for a memorial, newest first.

    Visitors only ever get approved entries. Owners and delegated moderators
    may ask for any status. Returns (entries, total, is_moderator).
    """
    memorial = get_memorial(memorial_id)
    assert_can_view(memorial, user, password)

    moderator = user is not None and can_moderate(memorial, user.id)
    status = status or EntryStatus.APPROVED.value
    if status not in STATUS_FILTERS:
        raise InvariantViolation(f"Invalid status filter: {status}")

    query = GuestbookEntry.query.filter(GuestbookEntry.memorial_id == memorial.id)
    if not moderator:
        query = query.filter(GuestbookEntry.status == EntryStatus.APPROVED.value)
    elif status != "all":
        query = query.filter(GuestbookEntry.status == status)

    total = query.count()
    entries = (
        query.order_by(GuestbookEntry.created_at.desc(), GuestbookEntry.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return entries, total, moderator


def _moderated_memorial_ids(actor):
    """Memorials the caller owns or moderates as a collaborator."""
    delegated = db.session.query(MemorialCollaborator.memorial_id).filter(
        MemorialCollaborator.user_id == actor.id,
        MemorialCollaborator.role.in_(MODERATOR_ROLES),
    )
    return db.session.query(Memorial.id).filter(
        or_(Memorial.user_id == actor.id, Memorial.id.in_(delegated))
    )


def moderation_queue(
    *,
    actor,
    memorial_id: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: int = 20,
) -> Tuple[List[GuestbookEntry], CursorMeta]:
    """Pending entries across the memorials the caller moderates, oldest first."""
    query = GuestbookEntry.query.filter(
        GuestbookEntry.status == EntryStatus.PENDING.value,
        GuestbookEntry.memorial_id.in_(_moderated_memorial_ids(actor)),
    )
    if memorial_id:
        query = query.filter(GuestbookEntry.memorial_id == memorial_id)

    return paginate_by_created(query, model=GuestbookEntry, cursor=cursor, limit=limit)


def moderation_stats(*, actor, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)

    moderated = GuestbookEntry.memorial_id.in_(_moderated_memorial_ids(actor))

    counts = dict(
        db.session.query(GuestbookEntry.status, func.count(GuestbookEntry.id))
        .filter(moderated)
        .group_by(GuestbookEntry.status)
        .all()
    )

    today = dict(
        db.session.query(GuestbookEntry.status, func.count(GuestbookEntry.id))
        .filter(moderated, GuestbookEntry.moderated_at >= start_of_day)
        .group_by(GuestbookEntry.status)
        .all()
    )

    blocked = BlockedUser.query.filter_by(blocked_by=actor.id).count()

    return {
        "pending": counts.get(EntryStatus.PENDING.value, 0),
        "approved_today": today.get(EntryStatus.APPROVED.value, 0),
        "rejected_today": today.get(EntryStatus.REJECTED.value, 0),
        "total_approved": counts.get(EntryStatus.APPROVED.value, 0),
        "total_rejected": counts.get(EntryStatus.REJECTED.value, 0),
        "blocked_users": blocked,
    }
