from typing import Any, Dict
from flask import current_app
from gathermemorials.extensions import db
from gathermemorials.models.blocked_user import BlockedUser
from gathermemorials.models.guestbook_entry import GuestbookEntry
from gathermemorials.models.memorial import Memorial
from gathermemorials.domain.exceptions import InvariantViolation, NotFound, PermissionDenied
from gathermemorials.domain.lifecycle.guestbook import EntryStatus, initial_entry_status
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.domain.spam import is_spam
from gathermemorials.services import notifications
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional


def submit_entry(
    *,
    author,
    data: Dict[str, Any],
) -> GuestbookEntry:
    """
    Posts a guestbook message.

    Checks run cheapest first: payload, spam, then the memorial's state and
    the owner's block list. Moderated guestbooks hold the entry as pending
    and the owner is notified.
    """
    memorial_id = data.get("memorial_id")
    message = data.get("message")
    photo_url = data.get("photo_url")

    # 1️⃣ Payload
    if not memorial_id or not message or not isinstance(message, str):
        raise InvariantViolation("Memorial ID and message are required")

    max_length = current_app.config["GUESTBOOK_MAX_MESSAGE_LENGTH"]
    if len(message) > max_length:
        raise InvariantViolation(f"Message must be {max_length} characters or less")

    if is_spam(message):
        raise InvariantViolation(
            "Your message was flagged as potential spam. Please revise and try again."
        )

    if photo_url is not None and not isinstance(photo_url, str):
        raise InvariantViolation("photo_url must be a string")

    # 2️⃣ Memorial state
    memorial = db.session.get(Memorial, memorial_id)
    if not memorial:
        raise NotFound("Memorial not found")

    if memorial.status != MemorialStatus.PUBLISHED.value:
        raise PermissionDenied("This memorial is not published")

    if not memorial.guestbook_enabled:
        raise PermissionDenied("Guestbook is not enabled for this memorial")

    # 3️⃣ Owner's block list
    blocked = BlockedUser.query.filter_by(
        user_id=author.id,
        blocked_by=memorial.user_id,
    ).first()
    if blocked:
        raise PermissionDenied("You are not allowed to post to this memorial")

    status = initial_entry_status(moderated=memorial.guestbook_moderated)

    entry = GuestbookEntry()
    entry.memorial_id = memorial.id
    entry.user_id = author.id
    entry.author_name = author.display_name
    entry.author_email = author.email
    entry.message = message.strip()
    entry.photo_url = photo_url or None
    entry.status = status.value

    with transactional():
        db.session.add(entry)
        db.session.flush()

        log_action(
            action="guestbook.submit",
            entity_type="guestbook_entry",
            entity_id=entry.id,
            actor_id=author.id,
            payload={"memorial_id": memorial.id, "status": entry.status},
        )

    if status == EntryStatus.PENDING:
        notifications.deliver(
            notifications.new_entry_moderation(entry=entry, memorial=memorial, owner=memorial.owner)
        )

    return entry
