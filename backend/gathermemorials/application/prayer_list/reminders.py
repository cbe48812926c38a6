import re
from datetime import date
from typing import Any, Dict, Optional

from dateutil import tz
from sqlalchemy.exc import IntegrityError

from gathermemorials.extensions import db
from gathermemorials.models.base import utcnow
from gathermemorials.models.reminder_preferences import DEFAULT_PREFERENCES, ReminderPreferences
from gathermemorials.domain.exceptions import Conflict, InvariantViolation
from gathermemorials.domain.reminders import upcoming_feast_days, upcoming_reminders
from gathermemorials.services import notifications
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.transaction import transactional
from .overview import active_entries, listed_entries

UPCOMING_SHOWN = 5
TEST_SAMPLE_SIZE = 3

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]:[0-5][0-9]$")
BOOLEAN_FIELDS = {name for name, value in DEFAULT_PREFERENCES.items() if isinstance(value, bool)}


def get_preferences(actor) -> Optional[ReminderPreferences]:
    return ReminderPreferences.query.filter_by(user_id=actor.id).first()


def preference(prefs: Optional[ReminderPreferences], field: str):
    """A saved preference, or its default for users who never saved any."""
    if prefs is None:
        return DEFAULT_PREFERENCES[field]
    return getattr(prefs, field)


def reminder_overview(*, actor, today: Optional[date] = None) -> Dict[str, Any]:
    """
    The caller's reminder preferences with what they would trigger in the
    coming week.
    """
    today = today or utcnow().date()
    prefs = get_preferences(actor)

    reminders = upcoming_reminders(listed_entries(actor), today=today)
    feasts = upcoming_feast_days(
        {field: preference(prefs, field) for field in BOOLEAN_FIELDS},
        today=today,
    )

    return {
        "preferences": prefs,
        "is_default": prefs is None,
        "statistics": {
            "active_prayer_count": len(active_entries(actor)),
            "upcoming_reminders_count": len(reminders),
            "upcoming_feast_days_count": len(feasts),
        },
        "upcoming_reminders": reminders[:UPCOMING_SHOWN],
        "upcoming_feast_days": feasts,
    }


def _clean_preferences(data: Dict[str, Any]) -> Dict[str, Any]:
    changes = {key: value for key, value in data.items() if key in DEFAULT_PREFERENCES}
    if not changes:
        raise InvariantViolation("No valid fields provided for update")

    for field in BOOLEAN_FIELDS & changes.keys():
        if not isinstance(changes[field], bool):
            raise InvariantViolation(f"{field} must be true or false")

    if "reminder_time" in changes:
        value = changes["reminder_time"]
        if not isinstance(value, str) or not TIME_PATTERN.match(value):
            raise InvariantViolation("Invalid time format. Use HH:MM:SS")

    if "timezone" in changes:
        value = changes["timezone"]
        if not isinstance(value, str) or not value or tz.gettz(value) is None:
            raise InvariantViolation("Invalid timezone")

    if "digest_day" in changes:
        value = changes["digest_day"]
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
            raise InvariantViolation("Invalid digest day. Must be 0-6 (Sunday-Saturday)")

    return changes


def update_reminder_preferences(*, actor, data) -> ReminderPreferences:
    """
    Creates or updates the caller's reminder preferences.

    Unknown keys are ignored; fields not sent keep their saved (or default)
    value.
    """
    if not isinstance(data, dict):
        raise InvariantViolation("Invalid request body")

    changes = _clean_preferences(data)
    prefs = get_preferences(actor)
    created = prefs is None

    try:
        with transactional():
            if created:
                prefs = ReminderPreferences(user_id=actor.id, **DEFAULT_PREFERENCES)
                db.session.add(prefs)

            for field, value in changes.items():
                setattr(prefs, field, value)
            db.session.flush()

            log_action(
                action="prayer_list.reminders.update",
                entity_type="reminder_preferences",
                entity_id=prefs.id,
                actor_id=actor.id,
                payload={"fields": sorted(changes), "created": created},
            )
    except IntegrityError as exc:
        raise Conflict("Reminder preferences were saved concurrently. Please retry.") from exc

    return prefs


def send_test_reminder(*, actor, today: Optional[date] = None) -> Dict[str, Any]:
    """Emails the caller a sample reminder built from their prayer list."""
    today = today or utcnow().date()
    entries = listed_entries(actor)

    payload = notifications.prayer_reminder_test(
        user=actor,
        memorials=[entry.memorial for entry in entries[:TEST_SAMPLE_SIZE]],
        reminders=upcoming_reminders(entries, today=today),
    )
    delivered = notifications.deliver(payload)

    return {
        "email": actor.email,
        "sample_count": min(len(entries), TEST_SAMPLE_SIZE),
        "delivered": delivered,
    }
