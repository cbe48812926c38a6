from typing import Any, Dict
from sqlalchemy.exc import IntegrityError
from gathermemorials.extensions import db
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.base import utcnow
from gathermemorials.domain.exceptions import Conflict, InvariantViolation
from gathermemorials.domain.invariants.memorial import assert_memorial
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional
from .fields import apply_fields, build_services


def assert_custom_url_available(custom_url, *, exclude_id=None):
    if not custom_url:
        return

    query = Memorial.query.filter(Memorial.custom_url == custom_url)
    if exclude_id:
        query = query.filter(Memorial.id != exclude_id)

    if query.first():
        raise Conflict("The custom URL is already taken. Please choose another.")


def create_memorial(
    *,
    owner,
    data: Dict[str, Any],
) -> Memorial:
    """
    Create a new memorial in DRAFT state for the wizard to fill in.

    Edge cases handled:
    - Duplicate custom URL (checked up front and by the unique constraint)
    - Invariant violations on any initial field
    """
    if not isinstance(data, dict):
        raise InvariantViolation("Invalid request body")

    memorial = Memorial()
    memorial.user_id = owner.id
    memorial.status = "draft"
    memorial.privacy = "private"
    memorial.guestbook_enabled = False
    memorial.guestbook_moderated = True
    memorial.guestbook_notify_email = owner.email
    memorial.guestbook_notify_frequency = "instant"
    memorial.payment_status = "unpaid"
    memorial.current_step = 1
    memorial.completed_steps = []
    memorial.last_saved_at = utcnow()

    apply_fields(memorial, data)
    if "services" in data:
        memorial.services = build_services(data["services"])

    # Domain invariants (single source of truth)
    assert_memorial(memorial)
    assert_custom_url_available(memorial.custom_url)

    try:
        with transactional():
            db.session.add(memorial)
            db.session.flush()  # ensures memorial.id is available

            log_action(
                action="memorial.create",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=owner.id,
                payload={"status": memorial.status},
            )

        return memorial

    except IntegrityError as exc:
        raise Conflict("The custom URL is already taken. Please choose another.") from exc
