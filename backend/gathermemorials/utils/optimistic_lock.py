from datetime import timezone
from dateutil.parser import parse

from gathermemorials.domain.exceptions import Conflict, InvariantViolation


def normalize_ts(ts):
    """
    Ensure datetime is timezone-aware.
    Defaults to UTC if naive.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_client_ts(raw):
    if not raw:
        raise InvariantViolation(
            "updated_at (or an If-Unmodified-Since header) is required for updates"
        )
    try:
        return normalize_ts(parse(raw))
    except (ValueError, OverflowError, TypeError):
        raise InvariantViolation("Invalid updated_at timestamp")


def enforce_optimistic_lock(entity, client_ts_raw):
    """
    Enforces optimistic locking against the updated_at the client last read.
    Raises Conflict if the entity has been modified since.
    """
    client_ts = parse_client_ts(client_ts_raw)
    server_ts = normalize_ts(entity.updated_at)

    # HTTP dates carry whole seconds only
    if client_ts.microsecond == 0:
        server_ts = server_ts.replace(microsecond=0)

    if server_ts != client_ts:
        raise Conflict(
            "Conflict detected. Memorial has been modified since it was read.",
            updated_at=server_ts.isoformat(),
        )
