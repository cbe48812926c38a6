from enum import Enum
from typing import Set

from gathermemorials.domain.exceptions import IllegalTransition, InvariantViolation


class EntryStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Moderation is one-way: nothing ever returns to pending.
ALLOWED_ENTRY_TRANSITIONS: dict[EntryStatus, Set[EntryStatus]] = {
    EntryStatus.PENDING: {EntryStatus.APPROVED, EntryStatus.REJECTED},
    EntryStatus.APPROVED: set(),
    EntryStatus.REJECTED: set(),
}

MODERATION_ACTIONS = {
    "approve": EntryStatus.APPROVED,
    "reject": EntryStatus.REJECTED,
}


def initial_entry_status(*, moderated: bool) -> EntryStatus:
    return EntryStatus.PENDING if moderated else EntryStatus.APPROVED


def status_for_action(action: str) -> EntryStatus:
    try:
        return MODERATION_ACTIONS[action]
    except KeyError:
        raise InvariantViolation('Invalid action. Must be "approve" or "reject"')


def assert_entry_transition(*, from_status, to_status) -> EntryStatus:
    source = EntryStatus(from_status)
    target = EntryStatus(to_status)

    if target not in ALLOWED_ENTRY_TRANSITIONS[source]:
        raise IllegalTransition(
            f"Illegal guestbook entry transition: {source.value} -> {target.value}"
        )
    return target
