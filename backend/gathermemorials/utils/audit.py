from flask import g
from gathermemorials.extensions import db
from gathermemorials.models.audit_log import AuditLog
from typing import Optional

def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id: Optional[str],
    payload: dict | None = None,
    actor_id: Optional[str] = None,
):
    """
    Append an audit row to the current session.

    The caller's transaction commits it; nothing is flushed here.
    """
    if actor_id is None:
        current_user = getattr(g, "current_user", None)
        actor_id = current_user.id if current_user else None

    log = AuditLog()
    log.actor_id = actor_id
    log.action = action
    log.entity_type = entity_type
    log.entity_id = entity_id or "*"
    log.payload = payload or {}

    db.session.add(log)
