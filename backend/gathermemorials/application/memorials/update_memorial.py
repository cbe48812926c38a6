from typing import Any, Dict
from sqlalchemy.exc import IntegrityError
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.base import utcnow
from gathermemorials.domain.exceptions import Conflict, InvariantViolation, PermissionDenied
from gathermemorials.domain.invariants.memorial import assert_memorial
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.optimistic_lock import enforce_optimistic_lock
from gathermemorials.utils.transaction import transactional
from .access import is_owner
from .create_memorial import assert_custom_url_available
from .fields import apply_fields, build_services, mark_step_completed
from .publish_memorial import lock_memorial


def update_memorial(
    *,
    memorial_id: str,
    actor,
    data: Dict[str, Any],
    expected_updated_at: str | None,
) -> Memorial:
    """
    Partial update of a memorial by its owner.

    Design rules:
    - The caller must send the updated_at it last read; a stale value is a
      conflict and nothing is written
    - The row is locked before the comparison so two writers holding the
      same updated_at cannot both pass it
    - Only whitelisted fields are mutable (status has its own endpoints)
    - services are replaced wholesale inside the same transaction
    - Invariants always revalidated
    """
    if not isinstance(data, dict):
        raise InvariantViolation("Invalid request body")

    memorial = lock_memorial(memorial_id)
    if not is_owner(memorial, actor):
        raise PermissionDenied("You do not have permission to edit this memorial.")

    if memorial.status == MemorialStatus.DELETED.value:
        raise Conflict("Deleted memorials cannot be edited.")

    enforce_optimistic_lock(memorial, expected_updated_at)

    try:
        with transactional():
            changed_fields = apply_fields(memorial, data)

            if "custom_url" in changed_fields:
                assert_custom_url_available(memorial.custom_url, exclude_id=memorial.id)

            if "services" in data:
                memorial.services = build_services(data["services"])
                changed_fields.append("services")

            if "current_step" in changed_fields:
                # Moving to a step completes the one before it
                mark_step_completed(memorial, memorial.current_step - 1)

            if not changed_fields:
                raise InvariantViolation("No valid fields provided for update")

            now = utcnow()
            memorial.updated_at = now
            memorial.last_saved_at = now

            # Domain invariant enforcement
            assert_memorial(memorial, publish=memorial.status == MemorialStatus.PUBLISHED.value)

            log_action(
                action="memorial.update",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=actor.id,
                payload={"fields": changed_fields},
            )

    except IntegrityError as exc:
        raise Conflict("The custom URL is already taken. Please choose another.") from exc

    return memorial
