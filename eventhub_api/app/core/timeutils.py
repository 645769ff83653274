"""
Timestamp helpers.

All timestamps are handled as timezone-aware UTC datetimes and stored
in the database as ISO 8601 strings with second precision, so that
lexicographic comparison in SQL matches chronological order.  Naive
datetimes supplied by clients are interpreted as UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return to_utc(value).isoformat(timespec="seconds")


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO string back into an aware datetime.

    Accepts the trailing ``Z`` designator and SQLite's
    ``CURRENT_TIMESTAMP`` format (``YYYY-MM-DD HH:MM:SS``).
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def month_label(value: datetime) -> str:
    """Label used by analytics for per-month grouping, e.g. ``"March 2025"``."""
    return value.strftime("%B %Y")
