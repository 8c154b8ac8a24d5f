from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .validation import ValidationError


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_business_date(value: date | str | None) -> date:
    """
    Coerce a business date ("YYYY-MM-DD") into a date.

    Business dates are UTC calendar days. datetime values are rejected so a
    timestamp can never be mistaken for a day.
    """
    if isinstance(value, datetime):
        raise ValidationError("date must be a calendar date, not a datetime")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("date is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Malformed date: {value!r} (expected YYYY-MM-DD)")


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) UTC-naive range covering one business date."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
