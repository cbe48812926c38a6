from typing import Any, Dict, List, Optional
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.guestbook_entry import GuestbookEntry
from gathermemorials.domain.exceptions import InvariantViolation, NotFound, PermissionDenied
from gathermemorials.domain.lifecycle.guestbook import assert_entry_transition, status_for_action
from gathermemorials.application.memorials.access import can_moderate
from gathermemorials.services import notifications
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional

MAX_BULK_ENTRIES = 100


def _entry_ids(entry_id, entry_ids) -> List[str]:
    ids = entry_ids if entry_ids is not None else ([entry_id] if entry_id else [])

    if not isinstance(ids, list) or not all(isinstance(i, str) and i for i in ids):
        raise InvariantViolation("entry_ids must be a list of entry IDs")
    if not ids:
        raise InvariantViolation("Entry ID(s) required")
    if len(ids) > MAX_BULK_ENTRIES:
        raise InvariantViolation(f"At most {MAX_BULK_ENTRIES} entries can be moderated at once")

    # keep order, drop repeats
    return list(dict.fromkeys(ids))


def moderate_entries(
    *,
    actor,
    action: str,
    entry_id: Optional[str] = None,
    entry_ids: Optional[List[str]] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Approves or rejects one or more guestbook entries atomically.

    Every entry must exist, belong to a memorial the caller may moderate and
    still be pending; otherwise nothing changes. Authors are notified after
    the commit.
    """
    target = status_for_action(action)
    ids = _entry_ids(entry_id, entry_ids)

    if reason is not None and not isinstance(reason, str):
        raise InvariantViolation("reason must be a string")

    entries = GuestbookEntry.query.filter(GuestbookEntry.id.in_(ids)).with_for_update().all()
    if len(entries) != len(ids):
        raise NotFound("Entries not found")

    allowed: Dict[str, bool] = {}
    for entry in entries:
        if entry.memorial_id not in allowed:
            allowed[entry.memorial_id] = can_moderate(entry.memorial, actor.id)
        if not allowed[entry.memorial_id]:
            raise PermissionDenied("Unauthorized to moderate these entries")

    # Moderation is one-way; a decided entry is a conflict
    for entry in entries:
        assert_entry_transition(from_status=entry.status, to_status=target)

    now = utcnow()
    with transactional():
        for entry in entries:
            entry.status = target.value
            entry.moderated_by = actor.id
            entry.moderated_at = now
            entry.moderation_reason = reason

            log_action(
                action=f"guestbook.{target.value}",
                entity_type="guestbook_entry",
                entity_id=entry.id,
                actor_id=actor.id,
                payload={"memorial_id": entry.memorial_id, "reason": reason},
            )

    sent = notifications.deliver_all(
        notifications.moderation_result(entry=entry, memorial=entry.memorial, reason=reason)
        for entry in entries
    )

    count = len(entries)
    return {
        "success": True,
        "moderated": count,
        "action": target.value,
        "notified": len(sent),
        "message": f"Successfully {target.value} {count} {'entry' if count == 1 else 'entries'}",
    }


def delete_entry(*, entry_id: str, actor) -> None:
    """Removes an entry outright. Only the memorial owner may do this."""
    entry = db.session.get(GuestbookEntry, entry_id)
    if not entry:
        raise NotFound("Entry not found")

    if entry.memorial.user_id != actor.id:
        raise PermissionDenied("Only the memorial owner can delete guestbook entries")

    with transactional():
        db.session.delete(entry)

        log_action(
            action="guestbook.delete",
            entity_type="guestbook_entry",
            entity_id=entry_id,
            actor_id=actor.id,
            payload={"memorial_id": entry.memorial_id},
        )
