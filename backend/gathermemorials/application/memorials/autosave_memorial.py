from typing import Any, Dict
from sqlalchemy.exc import IntegrityError
from gathermemorials.models.base import utcnow
from gathermemorials.domain.exceptions import Conflict, InvariantViolation
from gathermemorials.domain.invariants.memorial import WIZARD_STEPS, assert_memorial
from gathermemorials.domain.lifecycle.memorial import MemorialStatus
from gathermemorials.utils.audit import log_action
from gathermemorials.utils.optimistic_lock import normalize_ts
from gathermemorials.utils.transaction import transactional
from .access import get_owned_memorial
from .create_memorial import assert_custom_url_available
from .fields import apply_fields, mark_step_completed

# Wizard payload keys per step. Services (4) and gallery (6) are saved
# through their own endpoints.
STEP_FIELDS: Dict[int, Dict[str, str]] = {
    1: {
        "firstName": "first_name",
        "middleName": "middle_name",
        "lastName": "last_name",
        "nickname": "nickname",
        "dateOfBirth": "date_of_birth",
        "dateOfDeath": "date_of_death",
        "featuredPhotoUrl": "featured_photo_url",
        "coverPhotoUrl": "cover_photo_url",
    },
    2: {"headline": "headline"},
    3: {"obituary": "obituary"},
    4: {},
    5: {
        "donationEnabled": "donation_enabled",
        "donationType": "donation_type",
        "donationUrl": "donation_url",
        "donationDescription": "donation_description",
    },
    6: {},
    7: {
        "guestbookEnabled": "guestbook_enabled",
        "guestbookModeration": "guestbook_moderated",
        "guestbookNotifyEmail": "guestbook_notify_email",
        "guestbookNotifyFrequency": "guestbook_notify_frequency",
    },
    8: {
        "privacy": "privacy",
        "password": "password",
        "customUrl": "custom_url",
        "seoEnabled": "seo_enabled",
    },
    9: {},
}


def _parse_step(step) -> int:
    if isinstance(step, bool) or not isinstance(step, int) or not 1 <= step <= WIZARD_STEPS:
        raise InvariantViolation("Invalid step number")
    return step


def autosave_memorial(
    *,
    memorial_id: str,
    actor,
    step,
    data: Dict[str, Any] | None,
    completed: bool = False,
) -> Dict[str, Any]:
    """
    Saves one wizard step of a draft.

    Last writer wins: autosave is not optimistically locked, the rate
    limiter keeps it from hammering the row.
    """
    memorial = get_owned_memorial(memorial_id, actor)

    if memorial.status != MemorialStatus.DRAFT.value:
        raise InvariantViolation(
            "Cannot auto-save published memorials. Use the edit function instead."
        )

    step = _parse_step(step)
    data = data or {}
    if not isinstance(data, dict):
        raise InvariantViolation("data must be an object")

    mapping = STEP_FIELDS[step]
    updates = {column: data[key] for key, column in mapping.items() if key in data}

    try:
        with transactional():
            changed_fields = apply_fields(memorial, updates)

            if "custom_url" in changed_fields:
                assert_custom_url_available(memorial.custom_url, exclude_id=memorial.id)

            step_completed = bool(completed) and mark_step_completed(memorial, step)
            has_changes = bool(changed_fields) or step_completed or memorial.current_step != step

            if not has_changes:
                return {"success": True, "message": "No changes to save", "step": step, "has_changes": False}

            memorial.current_step = step
            memorial.last_saved_at = utcnow()

            assert_memorial(memorial)

            log_action(
                action="memorial.autosave",
                entity_type="memorial",
                entity_id=memorial.id,
                actor_id=actor.id,
                payload={"step": step, "fields": changed_fields},
            )

    except IntegrityError as exc:
        raise Conflict("The custom URL is already taken. Please choose another.") from exc

    return {
        "success": True,
        "message": "Changes saved",
        "step": step,
        "saved_at": normalize_ts(memorial.last_saved_at).isoformat(),
        "updated_at": normalize_ts(memorial.updated_at).isoformat(),
        "has_changes": True,
    }


def _saved_display(seconds: int, last_saved) -> str:
    minutes = seconds // 60
    hours = minutes // 60

    if seconds < 10:
        return "Just saved"
    if seconds < 60:
        return f"{seconds} seconds ago"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return last_saved.date().isoformat()


def autosave_status(*, memorial_id: str, actor) -> Dict[str, Any]:
    """Last save time and wizard progress, for the "Last saved ..." label."""
    memorial = get_owned_memorial(memorial_id, actor, action="view")

    last_saved = normalize_ts(memorial.last_saved_at) if memorial.last_saved_at else None
    elapsed_ms = None
    display = "Not saved yet"

    if last_saved is not None:
        elapsed = utcnow() - last_saved
        elapsed_ms = max(int(elapsed.total_seconds() * 1000), 0)
        display = _saved_display(elapsed_ms // 1000, last_saved)

    completed_steps = list(memorial.completed_steps or [])

    return {
        "last_saved": last_saved.isoformat() if last_saved else None,
        "last_saved_display": display,
        "time_since_last_save": elapsed_ms,
        "current_step": memorial.current_step or 1,
        "completed_steps": completed_steps,
        "progress_percentage": round(len(completed_steps) / WIZARD_STEPS * 100),
        "is_autosave_enabled": True,
    }
