import logging
from typing import Dict, List, Tuple
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.guestbook_entry import GuestbookEntry
from gathermemorials.models.memorial_collaborator import MemorialCollaborator
from gathermemorials.models.payment import Payment
from gathermemorials.models.prayer_list_entry import PrayerListEntry
from gathermemorials.domain.lifecycle.memorial import (
    MemorialStatus,
    SOFT_DELETE_STATUSES,
    assert_memorial_transition,
)
from gathermemorials.services import media_cdn
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.media import media_rules
from gathermemorials.utils.optimistic_lock import normalize_ts
from gathermemorials.utils.transaction import transactional
from .access import get_owned_memorial

logger = logging.getLogger(__name__)


def _destroy_assets(assets: List[Tuple[str, str]]) -> int:
    if not assets or not media_cdn.is_configured():
        return 0

    destroyed = 0
    for public_id, resource_type in assets:
        if media_cdn.destroy(public_id, resource_type=resource_type):
            destroyed += 1
    return destroyed


def delete_memorial(
    *,
    memorial_id: str,
    actor,
) -> Dict[str, object]:
    """
    Delete a memorial.

    Notes:
    - Drafts are removed outright with everything hanging off them; their
      CDN assets are destroyed once the rows are gone
    - Published and archived memorials are soft-deleted so the owner can
      still see them
    - A draft that already has a payment on record is soft-deleted too
    """
    memorial = get_owned_memorial(memorial_id, actor, action="delete")

    target = assert_memorial_transition(
        from_status=memorial.status,
        to_status=MemorialStatus.DELETED,
    )

    has_payments = Payment.query.filter_by(memorial_id=memorial.id).first() is not None
    soft = MemorialStatus(memorial.status) in SOFT_DELETE_STATUSES or has_payments

    if soft:
        with transactional():
            memorial.status = target.value
            memorial.soft_delete()

            log_action(
                action="memorial.delete",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=actor.id,
                payload={"mode": "soft"},
            )

        return {"memorial_id": memorial.id, "deleted": "soft", "deleted_at": normalize_ts(memorial.deleted_at).isoformat()}

    assets = [
        (asset.public_id, media_rules(asset.media_type)["resource_type"])
        for asset in memorial.media
    ]

    with transactional():
        # 🔥 Rows that point at the memorial without an ORM cascade
        GuestbookEntry.query.filter_by(memorial_id=memorial.id).delete(synchronize_session=False)
        MemorialCollaborator.query.filter_by(memorial_id=memorial.id).delete(synchronize_session=False)
        PrayerListEntry.query.filter_by(memorial_id=memorial.id).delete(synchronize_session=False)

        # 🔥 Memorial (services and media cascade)
        db.session.delete(memorial)

        log_action(
            action="memorial.delete",
            entity_type="memorial",
            entity_id=memorial_id,
            actor_id=actor.id,
            payload={"mode": "hard", "media": len(assets)},
        )

    destroyed = _destroy_assets(assets)
    if destroyed < len(assets):
        logger.warning(
            "Memorial %s deleted but %d of %d CDN assets were left behind",
            memorial_id, len(assets) - destroyed, len(assets),
        )

    return {"memorial_id": memorial_id, "deleted": "hard", "deleted_at": utcnow().isoformat()}
