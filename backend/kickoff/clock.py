from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Current UTC time without tzinfo.

    Every timestamp column is a naive DateTime holding UTC, and SQLite hands
    values back naive, so comparisons stay naive on both sides.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)
