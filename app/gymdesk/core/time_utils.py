from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Server-side 'now' in UTC, naive, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min)


def end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max)
