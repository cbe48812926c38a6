import csv
import io
from datetime import date
from typing import Any, Dict, List, Optional
from gathermemorials.models.base import utcnow
from gathermemorials.models.prayer_list_entry import PrayerListEntry
from gathermemorials.domain.anniversaries import upcoming_anniversaries
from gathermemorials.domain.exceptions import InvariantViolation, NotFound
from gathermemorials.application.memorials.access import is_listed

RECENT_ADDITIONS = 5
EXPORT_FORMATS = {"csv", "json"}

CSV_HEADERS = [
    "Name",
    "Birth Date",
    "Death Date",
    "Years Since Passing",
    "Headline",
    "Added to Prayer List",
    "Notes",
]


def active_entries(actor) -> List[PrayerListEntry]:
    return (
        PrayerListEntry.query
        .filter_by(user_id=actor.id, is_active=True)
        .order_by(PrayerListEntry.added_at.desc(), PrayerListEntry.id.desc())
        .all()
    )


def listed_entries(actor) -> List[PrayerListEntry]:
    return [entry for entry in active_entries(actor) if is_listed(entry.memorial, actor)]


def memorial_visible(entry: PrayerListEntry, actor) -> bool:
    return is_listed(entry.memorial, actor)


def prayer_list_overview(*, actor, today: Optional[date] = None) -> Dict[str, Any]:
    """
    The caller's active prayer list with anniversaries in the next 30 days
    and a few summary numbers.

    Memorials the caller can no longer see keep their row but lose their
    summary; ``visible_ids`` names the ones that may still be shown.
    """
    today = today or utcnow().date()
    entries = active_entries(actor)
    visible_ids = {entry.memorial_id for entry in entries if is_listed(entry.memorial, actor)}

    anniversaries = upcoming_anniversaries(
        [entry.memorial for entry in entries if entry.memorial_id in visible_ids],
        today=today,
    )

    stats = {
        "total_count": len(entries),
        "anniversaries_count": len(anniversaries),
        "recent_additions": [
            {
                "memorial_id": entry.memorial_id,
                "memorial_name": entry.memorial.full_name if entry.memorial_id in visible_ids else "Unknown",
                "added_at": entry.added_at,
            }
            for entry in entries[:RECENT_ADDITIONS]
        ],
    }

    return {
        "entries": entries,
        "anniversaries": anniversaries,
        "stats": stats,
        "visible_ids": visible_ids,
    }


def _full_name(memorial) -> str:
    return " ".join(p for p in (memorial.first_name, memorial.middle_name, memorial.last_name) if p)


def _years_since(value: Optional[date], today: date):
    return today.year - value.year if value else None


def export_prayer_list(*, actor, fmt: Optional[str]) -> Dict[str, Any]:
    """
    Renders the active prayer list for download.

    Returns {content, mimetype, filename}; ``content`` is text for CSV and
    a dict for JSON.
    """
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise InvariantViolation(f"Invalid format. Must be one of: {', '.join(sorted(EXPORT_FORMATS))}")

    entries = listed_entries(actor)
    if not entries:
        raise NotFound("Prayer list is empty")

    now = utcnow()
    today = now.date()
    filename = f"prayer-list-{today.isoformat()}.{fmt}"

    if fmt == "csv":
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADERS)
        for entry in entries:
            memorial = entry.memorial
            years = _years_since(memorial.date_of_death, today)
            writer.writerow([
                _full_name(memorial),
                memorial.date_of_birth.isoformat() if memorial.date_of_birth else "",
                memorial.date_of_death.isoformat() if memorial.date_of_death else "",
                "" if years is None else years,
                memorial.headline or "",
                entry.added_at.date().isoformat() if entry.added_at else "",
                entry.notes or "",
            ])
        return {"content": buffer.getvalue(), "mimetype": "text/csv", "filename": filename}

    content = {
        "export_info": {
            "exported_by": actor.display_name,
            "export_date": now.isoformat(),
            "total_count": len(entries),
            "format": "json",
            "version": "1.0",
        },
        "prayer_list": [
            {
                "memorial": {
                    "id": entry.memorial.id,
                    "name": {
                        "first": entry.memorial.first_name,
                        "middle": entry.memorial.middle_name,
                        "last": entry.memorial.last_name,
                        "nickname": entry.memorial.nickname,
                    },
                    "dates": {
                        "birth": entry.memorial.date_of_birth.isoformat() if entry.memorial.date_of_birth else None,
                        "death": entry.memorial.date_of_death.isoformat() if entry.memorial.date_of_death else None,
                        "years_since_passing": _years_since(entry.memorial.date_of_death, today),
                    },
                    "headline": entry.memorial.headline,
                    "url": entry.memorial.custom_url,
                },
                "prayer_list_info": {
                    "added_at": entry.added_at.isoformat() if entry.added_at else None,
                    "notes": entry.notes,
                },
                "services": [
                    {
                        "type": service.service_type,
                        "date": service.date.isoformat() if service.date else None,
                        "time": service.time,
                        "location": service.location,
                        "address": service.address,
                    }
                    for service in entry.memorial.services
                ],
            }
            for entry in entries
        ],
    }
    return {"content": content, "mimetype": "application/json", "filename": filename}
