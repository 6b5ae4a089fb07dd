"""Timestamps are stored as ISO-8601 UTC strings."""

from datetime import datetime, timedelta, timezone


def utc_now():
    return datetime.now(timezone.utc)


def now_iso():
    return utc_now().isoformat()


def iso_in(hours):
    return (utc_now() + timedelta(hours=hours)).isoformat()


def parse_iso(value):
    """Parse a stored timestamp; Firestore-native datetimes pass through."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    raw = str(value or '').strip()
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_expired(value, now=None):
    parsed = parse_iso(value)
    if parsed is None:
        return True
    return parsed <= (now or utc_now())


def is_newer_than(value, max_age_hours, now=None):
    parsed = parse_iso(value)
    if parsed is None:
        return False
    return (now or utc_now()) - parsed < timedelta(hours=max_age_hours)
