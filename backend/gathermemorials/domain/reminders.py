from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping

from dateutil.easter import easter

from .anniversaries import next_occurrence

REMINDER_WINDOW_DAYS = 7


def feast_days(year: int) -> Dict[str, date]:
    """Remembrance feasts observed by the prayer list for ``year``."""
    easter_sunday = easter(year)
    return {
        "good_friday": easter_sunday - timedelta(days=2),
        "easter": easter_sunday,
        "divine_mercy_sunday": easter_sunday + timedelta(days=7),
        "assumption_of_mary": date(year, 8, 15),
        "all_saints_day": date(year, 11, 1),
        "all_souls_day": date(year, 11, 2),
        "christmas": date(year, 12, 25),
    }


def upcoming_feast_days(
    enabled: Mapping[str, bool],
    *,
    today: date,
    window_days: int = REMINDER_WINDOW_DAYS,
) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []

    # The window may run into next year
    for year in (today.year, today.year + 1):
        for feast, when in feast_days(year).items():
            days_until = (when - today).days
            if enabled.get(feast) and 0 <= days_until <= window_days:
                results.append({"feast": feast, "date": when.isoformat(), "days_until": days_until})

    results.sort(key=lambda item: item["days_until"])
    return results


def upcoming_reminders(
    entries: Iterable[Any],
    *,
    today: date,
    window_days: int = REMINDER_WINDOW_DAYS,
) -> List[Dict[str, Any]]:
    """
    Birthdays and death anniversaries of prayer list memorials in the next
    ``window_days`` days, honouring each entry's reminder switches.
    """
    results: List[Dict[str, Any]] = []

    for entry in entries:
        memorial = entry.memorial
        name = " ".join(p for p in (memorial.first_name, memorial.last_name) if p)
        checks = (
            ("birthday", entry.remind_on_birthday, memorial.date_of_birth),
            ("death_anniversary", entry.remind_on_death_anniversary, memorial.date_of_death),
        )

        for kind, wanted, original in checks:
            if not wanted or not original:
                continue
            when = next_occurrence(original, today)
            days_until = (when - today).days
            if days_until <= window_days:
                results.append({
                    "type": kind,
                    "date": when.isoformat(),
                    "days_until": days_until,
                    "memorial_id": memorial.id,
                    "memorial_name": name,
                })

    results.sort(key=lambda item: item["days_until"])
    return results
