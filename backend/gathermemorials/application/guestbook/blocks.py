from typing import Any, Dict, List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.blocked_user import BlockedUser
from gathermemorials.models.guestbook_entry import GuestbookEntry
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.user import User
from gathermemorials.domain.exceptions import Conflict, InvariantViolation, NotFound
from gathermemorials.domain.lifecycle.guestbook import EntryStatus
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional

DEFAULT_BLOCK_REASON = "Inappropriate content"
BLOCKED_REJECTION_REASON = "User blocked"


def block_user(
    *,
    actor,
    user_id: Optional[str],
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Blocks a user from every memorial the caller owns.

    In the same transaction the user's pending entries on those memorials
    are rejected.
    """
    if not user_id:
        raise InvariantViolation("User ID is required")
    if user_id == actor.id:
        raise InvariantViolation("You cannot block yourself")
    if not db.session.get(User, user_id):
        raise NotFound("User not found")

    existing = BlockedUser.query.filter_by(user_id=user_id, blocked_by=actor.id).first()
    if existing:
        raise Conflict("User is already blocked")

    block = BlockedUser()
    block.user_id = user_id
    block.blocked_by = actor.id
    block.reason = reason or DEFAULT_BLOCK_REASON

    owned_memorials = select(Memorial.id).where(Memorial.user_id == actor.id)

    try:
        with transactional():
            db.session.add(block)
            db.session.flush()

            result = db.session.execute(
                update(GuestbookEntry)
                .where(
                    GuestbookEntry.user_id == user_id,
                    GuestbookEntry.status == EntryStatus.PENDING.value,
                    GuestbookEntry.memorial_id.in_(owned_memorials),
                )
                .values(
                    status=EntryStatus.REJECTED.value,
                    moderated_by=actor.id,
                    moderated_at=utcnow(),
                    moderation_reason=BLOCKED_REJECTION_REASON,
                )
                .execution_options(synchronize_session=False)
            )
            rejected = result.rowcount or 0

            log_action(
                action="guestbook.block",
                entity_type="user",
                entity_id=user_id,
                actor_id=actor.id,
                payload={"reason": block.reason, "rejected_entries": rejected},
            )
    except IntegrityError as exc:
        raise Conflict("User is already blocked") from exc

    return {
        "success": True,
        "rejected_entries": rejected,
        "message": "User has been blocked from posting to your memorials",
    }


def unblock_user(*, actor, user_id: str) -> None:
    block = BlockedUser.query.filter_by(user_id=user_id, blocked_by=actor.id).first()
    if not block:
        raise NotFound("Block not found")

    with transactional():
        db.session.delete(block)

        log_action(
            action="guestbook.unblock",
            entity_type="user",
            entity_id=user_id,
            actor_id=actor.id,
        )


def list_blocks(*, actor) -> List[BlockedUser]:
    return (
        BlockedUser.query
        .filter_by(blocked_by=actor.id)
        .order_by(BlockedUser.created_at.desc())
        .all()
    )
