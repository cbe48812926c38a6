import calendar
from datetime import date
from typing import Any, Dict, Iterable, List

UPCOMING_WINDOW_DAYS = 30


def _on_year(original: date, year: int) -> date:
    # Feb 29 falls back to Feb 28 outside leap years
    if original.month == 2 and original.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return original.replace(year=year)


def next_occurrence(original: date, today: date) -> date:
    candidate = _on_year(original, today.year)
    if candidate < today:
        candidate = _on_year(original, today.year + 1)
    return candidate


def upcoming_anniversaries(
    memorials: Iterable[Any],
    *,
    today: date,
    window_days: int = UPCOMING_WINDOW_DAYS,
) -> List[Dict[str, Any]]:
    """
    Death anniversaries and birthdays falling within the next ``window_days``
    days (today included), nearest first.
    """
    results: List[Dict[str, Any]] = []

    for memorial in memorials:
        name = " ".join(p for p in (memorial.first_name, memorial.last_name) if p)

        if memorial.date_of_death:
            when = next_occurrence(memorial.date_of_death, today)
            days_until = (when - today).days
            if days_until <= window_days:
                results.append({
                    "memorial_id": memorial.id,
                    "memorial_name": name,
                    "type": "death",
                    "date": when.isoformat(),
                    "days_until": days_until,
                    "years_since": when.year - memorial.date_of_death.year,
                })

        if memorial.date_of_birth:
            when = next_occurrence(memorial.date_of_birth, today)
            days_until = (when - today).days
            if days_until <= window_days:
                results.append({
                    "memorial_id": memorial.id,
                    "memorial_name": name,
                    "type": "birthday",
                    "date": when.isoformat(),
                    "days_until": days_until,
                    "years_old": when.year - memorial.date_of_birth.year,
                })

    results.sort(key=lambda item: item["days_until"])
    return results
