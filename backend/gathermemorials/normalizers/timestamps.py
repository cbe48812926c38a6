from gathermemorials.utils.optimistic_lock import normalize_ts


def iso(value):
    """UTC ISO-8601 for datetimes, plain ISO for dates, None passes through."""
    if value is None:
        return None
    if hasattr(value, "tzinfo"):
        return normalize_ts(value).isoformat()
    return value.isoformat()
