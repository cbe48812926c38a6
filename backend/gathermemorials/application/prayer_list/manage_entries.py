from typing import Optional
from sqlalchemy.exc import IntegrityError
from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.prayer_list_entry import PrayerListEntry
from gathermemorials.domain.exceptions import Conflict, InvariantViolation, NotFound
from gathermemorials.application.memorials.access import assert_can_view, get_memorial
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional
from .reminders import get_preferences, preference

MAX_NOTES_LENGTH = 500
REMINDER_FLAGS = ("remind_on_birthday", "remind_on_death_anniversary")


def _clean_notes(notes) -> Optional[str]:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise InvariantViolation("Notes must be a string or null")
    if len(notes) > MAX_NOTES_LENGTH:
        raise InvariantViolation(f"Notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return notes.strip() or None


def _owned_entry(entry_id: str, actor) -> PrayerListEntry:
    entry = PrayerListEntry.query.filter_by(id=entry_id, user_id=actor.id).first()
    if not entry:
        raise NotFound("Prayer list item not found")
    return entry


def add_to_prayer_list(
    *,
    actor,
    memorial_id: Optional[str],
    notes=None,
    password: Optional[str] = None,
) -> tuple[PrayerListEntry, bool]:
    """
    Adds a memorial to the caller's prayer list.

    A previously removed row is reactivated rather than duplicated. Returns
    (entry, reactivated).
    """
    if not memorial_id:
        raise InvariantViolation("Memorial ID is required")

    notes = _clean_notes(notes)

    memorial = get_memorial(memorial_id)
    assert_can_view(memorial, actor, password)

    entry = PrayerListEntry.query.filter_by(user_id=actor.id, memorial_id=memorial.id).first()
    if entry and entry.is_active:
        raise Conflict("Memorial already in prayer list")

    reactivated = entry is not None
    now = utcnow()

    try:
        with transactional():
            if not entry:
                prefs = get_preferences(actor)
                entry = PrayerListEntry()
                entry.user_id = actor.id
                entry.memorial_id = memorial.id
                entry.remind_on_birthday = preference(prefs, "default_birthday_reminder")
                entry.remind_on_death_anniversary = preference(prefs, "default_death_anniversary_reminder")
                db.session.add(entry)

            entry.is_active = True
            entry.added_at = now
            entry.removed_at = None
            entry.notes = notes
            db.session.flush()

            log_action(
                action="prayer_list.add",
                entity_type="prayer_list_entry",
                entity_id=entry.id,
                actor_id=actor.id,
                payload={"memorial_id": memorial.id, "reactivated": reactivated},
            )
    except IntegrityError as exc:
        raise Conflict("Memorial already in prayer list") from exc

    return entry, reactivated


def update_prayer_entry(*, actor, entry_id: str, data) -> PrayerListEntry:
    """Updates the notes and reminder switches of an active entry."""
    if not isinstance(data, dict):
        raise InvariantViolation("Invalid request body")

    changes = {}
    if "notes" in data:
        changes["notes"] = _clean_notes(data["notes"])
    for flag in REMINDER_FLAGS:
        if flag in data:
            if not isinstance(data[flag], bool):
                raise InvariantViolation(f"{flag} must be true or false")
            changes[flag] = data[flag]

    if not changes:
        raise InvariantViolation("No valid fields provided for update")

    entry = _owned_entry(entry_id, actor)

    if not entry.is_active:
        raise InvariantViolation("Cannot update removed prayer list item")

    with transactional():
        for field, value in changes.items():
            setattr(entry, field, value)

    return entry


def remove_from_prayer_list(*, actor, entry_id: str) -> PrayerListEntry:
    """Soft delete: the row stays so the memorial can be re-added later."""
    entry = _owned_entry(entry_id, actor)

    if not entry.is_active:
        raise NotFound("Prayer list item not found")

    with transactional():
        entry.is_active = False
        entry.removed_at = utcnow()

        log_action(
            action="prayer_list.remove",
            entity_type="prayer_list_entry",
            entity_id=entry.id,
            actor_id=actor.id,
            payload={"memorial_id": entry.memorial_id},
        )

    return entry
