# File: seismic/clock.py
from datetime import datetime, timezone


def utcnow():
    """Current instant as a naive UTC datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    if value is None:
        return None
    return value.strftime('%Y-%m-%dT%H:%M:%SZ')
