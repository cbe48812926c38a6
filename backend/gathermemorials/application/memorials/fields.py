from datetime import date
from typing import Any, Dict, List

from gathermemorials.domain.exceptions import InvariantViolation
from gathermemorials.models.memorial import Memorial
from gathermemorials.models.memorial_service import MemorialService

TEXT_FIELDS = {
    "first_name", "middle_name", "last_name", "nickname",
    "featured_photo_url", "cover_photo_url",
    "headline", "obituary",
    "donation_type", "donation_url", "donation_description",
    "guestbook_notify_email", "guestbook_notify_frequency",
    "privacy",
}
DATE_FIELDS = {"date_of_birth", "date_of_death"}
BOOL_FIELDS = {"donation_enabled", "guestbook_enabled", "guestbook_moderated", "seo_enabled"}

# Everything an owner may set directly. status, payment and ownership
# columns only change through their dedicated services.
MUTABLE_FIELDS = TEXT_FIELDS | DATE_FIELDS | BOOL_FIELDS | {"custom_url", "password", "current_step"}


def parse_date(field: str, value) -> date | None:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvariantViolation(f"{field} must be a date in YYYY-MM-DD format")


def _coerce(field: str, value):
    if field in DATE_FIELDS:
        return parse_date(field, value)

    if field in BOOL_FIELDS:
        if not isinstance(value, bool):
            raise InvariantViolation(f"{field} must be a boolean")
        return value

    if field == "current_step":
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvariantViolation("current_step must be an integer")
        return value

    if value is not None and not isinstance(value, str):
        raise InvariantViolation(f"{field} must be a string")

    if value is None:
        return None

    value = value.strip()
    if field == "custom_url":
        value = value.lower()
    return value or None


def apply_fields(memorial: Memorial, data: Dict[str, Any]) -> List[str]:
    """
    Copies whitelisted fields from ``data`` onto the memorial.

    Returns the names of fields whose value actually changed. Unknown keys
    are ignored.
    """
    changed: List[str] = []

    for field in sorted(MUTABLE_FIELDS & data.keys()):
        value = _coerce(field, data[field])

        if field == "password":
            if value is None and memorial.password_hash is None:
                continue
            memorial.set_password(value)
            changed.append(field)
            continue

        if getattr(memorial, field) != value:
            setattr(memorial, field, value)
            changed.append(field)

    return changed


def mark_step_completed(memorial: Memorial, step: int) -> bool:
    if step < 1:
        return False

    completed = list(memorial.completed_steps or [])
    if step in completed:
        return False

    completed.append(step)
    # Reassign so SQLAlchemy sees the JSON column change
    memorial.completed_steps = sorted(completed)
    return True


def build_services(items) -> List[MemorialService]:
    if not isinstance(items, list):
        raise InvariantViolation("services must be a list")

    services = []
    for item in items:
        if not isinstance(item, dict):
            raise InvariantViolation("Each service must be an object")

        service = MemorialService()
        service.service_type = item.get("type") or item.get("service_type")
        service.date = parse_date("date", item.get("date"))
        service.time = item.get("time")
        service.location = item.get("location")
        service.address = item.get("address")
        service.notes = item.get("notes")
        services.append(service)

    return services
