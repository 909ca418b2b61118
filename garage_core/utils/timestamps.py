"""Timestamp normalization for values crossing the data-access boundary.

Rows come back from SQLite as naive datetimes even for timezone-aware
columns, clients send ISO strings, and older exports carry epoch seconds or
``{"seconds": n}`` mappings. Everything is funnelled through :func:`as_utc`
once, so the rest of the code only ever sees aware UTC datetimes.
"""
from datetime import date, datetime, time, timezone
from numbers import Number

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Return ``value`` as an aware UTC datetime, or None when it has no time."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise TypeError(f"Unsupported timestamp value: {value!r}")
    if isinstance(value, Number):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, dict) and 'seconds' in value:
        nanos = value.get('nanoseconds') or 0
        return datetime.fromtimestamp(value['seconds'] + nanos / 1e9, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        return as_utc(datetime.fromisoformat(text))
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def isoformat(value):
    normalized = as_utc(value)
    return normalized.isoformat() if normalized else None


def sort_key(value):
    """Sort key that puts missing timestamps last in a newest-first sort."""
    return as_utc(value) or EPOCH
