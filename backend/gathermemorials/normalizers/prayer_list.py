from gathermemorials.models.reminder_preferences import DEFAULT_PREFERENCES
from .timestamps import iso


def normalize_prayer_entry(entry, show_memorial: bool = True):
    memorial = entry.memorial if show_memorial else None
    return {
        "id": entry.id,
        "memorial_id": entry.memorial_id,
        "notes": entry.notes,
        "is_active": entry.is_active,
        "remind_on_birthday": entry.remind_on_birthday,
        "remind_on_death_anniversary": entry.remind_on_death_anniversary,
        "added_at": iso(entry.added_at),
        "removed_at": iso(entry.removed_at),
        "memorial": {
            "id": memorial.id,
            "full_name": memorial.full_name,
            "date_of_birth": iso(memorial.date_of_birth),
            "date_of_death": iso(memorial.date_of_death),
            "featured_photo_url": memorial.featured_photo_url,
            "custom_url": memorial.custom_url,
            "status": memorial.status,
        } if memorial else None,
    }


def normalize_prayer_stats(stats):
    return {
        **stats,
        "recent_additions": [
            {**item, "added_at": iso(item["added_at"])}
            for item in stats["recent_additions"]
        ],
    }


def normalize_reminder_preferences(prefs):
    """Saved preferences, or the defaults for a user who never saved any."""
    if prefs is None:
        return {**DEFAULT_PREFERENCES, "created_at": None, "updated_at": None}

    return {
        **{field: getattr(prefs, field) for field in DEFAULT_PREFERENCES},
        "created_at": iso(prefs.created_at),
        "updated_at": iso(prefs.updated_at),
    }
