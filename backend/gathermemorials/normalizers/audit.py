# gathermemorials/normalizers/audit.py
from __future__ import annotations

from typing import Dict, Any
from gathermemorials.models.audit_log import AuditLog
from .timestamps import iso


def normalize_audit_log(log: AuditLog) -> Dict[str, Any]:
    """
    Normalizes an AuditLog row for the memorial activity feed.

    Notes:
    - entity_id is "*" for events that are not about a single row
    - payload is whatever the service recorded and is JSON-serializable
    """
    return {
        "id": log.id,
        "actor_id": log.actor_id,
        "action": log.action,
        "entity_type": log.entity_type,
        "entity_id": log.entity_id,
        "payload": log.payload or {},
        "created_at": iso(log.created_at),
    }
