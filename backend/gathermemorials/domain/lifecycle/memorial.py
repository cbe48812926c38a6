from enum import Enum
from typing import Set

from gathermemorials.domain.exceptions import IllegalTransition


class MemorialStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    DELETED = "deleted"


# Explicit allowed state transitions
ALLOWED_MEMORIAL_TRANSITIONS: dict[MemorialStatus, Set[MemorialStatus]] = {
    MemorialStatus.DRAFT: {MemorialStatus.PUBLISHED, MemorialStatus.DELETED},
    MemorialStatus.PUBLISHED: {MemorialStatus.ARCHIVED, MemorialStatus.DELETED},
    MemorialStatus.ARCHIVED: {MemorialStatus.PUBLISHED, MemorialStatus.DELETED},
    MemorialStatus.DELETED: set(),
}

# Statuses whose removal keeps the row around with deleted_at set
SOFT_DELETE_STATUSES = {MemorialStatus.PUBLISHED, MemorialStatus.ARCHIVED}


def assert_memorial_transition(*, from_status, to_status) -> MemorialStatus:
    """
    Guards memorial lifecycle transitions.
    Single source of truth for status changes.
    """
    source = MemorialStatus(from_status)
    target = MemorialStatus(to_status)

    if target not in ALLOWED_MEMORIAL_TRANSITIONS[source]:
        raise IllegalTransition(
            f"Illegal memorial transition: {source.value} -> {target.value}"
        )
    return target
