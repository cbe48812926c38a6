from gathermemorials.models.memorial import Memorial
from gathermemorials.models.base import utcnow
from gathermemorials.domain.exceptions import IllegalTransition, PermissionDenied
from gathermemorials.domain.lifecycle.memorial import MemorialStatus, assert_memorial_transition
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional
from .publish_memorial import apply_publish, lock_memorial


def _owned_locked(memorial_id: str, actor, action: str) -> Memorial:
    memorial = lock_memorial(memorial_id)
    if memorial.user_id != actor.id:
        raise PermissionDenied(f"You do not have permission to {action} this memorial.")
    return memorial


def archive_memorial(*, memorial_id: str, actor) -> Memorial:
    """Takes a published memorial offline without deleting it."""
    memorial = _owned_locked(memorial_id, actor, "archive")

    with transactional():
        assert_memorial_transition(from_status=memorial.status, to_status=MemorialStatus.ARCHIVED)

        memorial.status = MemorialStatus.ARCHIVED.value
        memorial.archived_at = utcnow()

        log_action(
            action="memorial.archive",
            entity_type="memorial",
            entity_id=memorial.id,
            actor_id=actor.id,
        )

    return memorial


def unarchive_memorial(*, memorial_id: str, actor) -> Memorial:
    memorial = _owned_locked(memorial_id, actor, "unarchive")

    if memorial.status != MemorialStatus.ARCHIVED.value:
        raise IllegalTransition(f"Illegal memorial transition: {memorial.status} -> unarchived")

    with transactional():
        apply_publish(memorial)

        log_action(
            action="memorial.unarchive",
            entity_type="memorial",
            entity_id=memorial.id,
            actor_id=actor.id,
        )

    return memorial
