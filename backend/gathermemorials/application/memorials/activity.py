from typing import List, Optional, Tuple
from gathermemorials.models.audit_log import AuditLog
from gathermemorials.utils.pagination import CursorMeta, paginate_by_created
from .access import get_owned_memorial


def memorial_activity(
    *,
    memorial_id: str,
    actor,
    action: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: int = 20,
) -> Tuple[List[AuditLog], CursorMeta]:
    """Audit trail of a memorial's lifecycle and payment events, newest first."""
    memorial = get_owned_memorial(memorial_id, actor, action="view")

    query = AuditLog.query.filter(
        AuditLog.entity_type == "memorial",
        AuditLog.entity_id == memorial.id,
    )
    if action:
        query = query.filter(AuditLog.action == action)

    return paginate_by_created(query, model=AuditLog, cursor=cursor, limit=limit, newest_first=True)
