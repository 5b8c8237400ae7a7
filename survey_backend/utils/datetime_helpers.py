"""UTC helpers for timestamps read from and written to the survey tables."""
from datetime import datetime, UTC
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime; every stored timestamp is written with this."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a stored timestamp to aware UTC.

    SQLite returns naive values for ``DateTime(timezone=True)`` columns; they
    were written in UTC, so the zone is attached rather than converted.

    Example:
        >>> ensure_utc(datetime(2026, 1, 1, 12)).tzinfo == UTC
        True
        >>> ensure_utc(None) is None
        True
    """
    if dt is None:
        return None
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def isoformat_utc(dt: datetime) -> str:
    """ISO 8601 in UTC with a ``Z`` suffix, e.g. ``2026-03-01T09:30:00Z``."""
    return ensure_utc(dt).isoformat().replace("+00:00", "Z")
