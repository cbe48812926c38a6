from typing import Dict
from sqlalchemy import select
from gathermemorials.extensions import db
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.base import utcnow
from gathermemorials.domain.exceptions import NotFound, PermissionDenied
from gathermemorials.domain.invariants.memorial import assert_memorial
from gathermemorials.domain.lifecycle.memorial import MemorialStatus, assert_memorial_transition
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional


def lock_memorial(memorial_id: str) -> Memorial:
    memorial = (
        db.session.execute(
            select(Memorial)
            .where(Memorial.id == memorial_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        .scalar_one_or_none()
    )

    if not memorial:
        raise NotFound("Memorial not found")
    return memorial


def apply_publish(memorial: Memorial) -> None:
    """
    Moves a memorial to PUBLISHED inside the caller's transaction.

    The lifecycle and publish invariants are checked before anything is
    written.
    """
    assert_memorial_transition(from_status=memorial.status, to_status=MemorialStatus.PUBLISHED)
    assert_memorial(memorial, publish=True)

    memorial.status = MemorialStatus.PUBLISHED.value
    memorial.archived_at = None
    if memorial.published_at is None:
        memorial.published_at = utcnow()


def publish_memorial(
    *,
    memorial_id: str,
    actor,
) -> Dict[str, str]:
    """
    Publishes a paid memorial.

    Responsibilities:
    - row-level lock
    - ownership and payment gate
    - lifecycle transition + publish invariants
    - audit logging
    """

    # 1️⃣ Fetch memorial with row-level lock
    memorial = lock_memorial(memorial_id)

    if memorial.user_id != actor.id:
        raise PermissionDenied("You do not have permission to publish this memorial.")

    # 2️⃣ Payment gate
    if memorial.payment_status != "paid":
        raise PermissionDenied("Payment is required before publishing.", payment_status=memorial.payment_status)

    with transactional():
        # 3️⃣ Lifecycle transition + publish-specific invariants
        apply_publish(memorial)

        # 4️⃣ Audit logging
        log_action(
            action="memorial.publish",
            entity_type="memorial",
            entity_id=memorial.id,
            actor_id=actor.id,
            payload={"published_at": memorial.published_at.isoformat()},
        )

    return {
        "memorial_id": memorial.id,
        "status": memorial.status,
    }
