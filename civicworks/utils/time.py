"""
Timestamp helpers.

Firestore hands back DatetimeWithNanoseconds, the memory store hands back
plain datetimes and seeded data may carry ISO strings. Everything is
normalized to timezone-aware UTC before comparison.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Default clock used by the services."""
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse various timestamp formats to timezone-aware datetime (UTC).

    Returns None when the value cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    # Firestore / protobuf Timestamp interfaces
    if hasattr(value, 'to_datetime'):
        return parse_timestamp(value.to_datetime())
    if hasattr(value, 'ToDatetime'):
        return parse_timestamp(value.ToDatetime())
    return None


def age_in_days(created_at, now: datetime) -> float:
    """Fractional days between created_at and now (0.0 if unparseable)."""
    created = parse_timestamp(created_at)
    if created is None:
        return 0.0
    return (parse_timestamp(now) - created).total_seconds() / 86400
