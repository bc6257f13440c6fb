from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Iterator

from ..core.exceptions import ValidationError


def parse_iso_date(value: Any, field_name: str = "date") -> date:
    """Parse YYYY-MM-DD string (or date/datetime) into date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}, expected YYYY-MM-DD")


def parse_optional_date(value: Any, field_name: str = "date") -> date | None:
    if value in (None, ""):
        return None
    return parse_iso_date(value, field_name)


def parse_iso_datetime(value: Any, field_name: str = "datetime") -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value or "").strip()
    if text.endswith("Z"):
        text = text[:-1]
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f"Invalid {field_name}, expected ISO 8601")


def parse_hhmm(value: str) -> time:
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except (AttributeError, ValueError):
        raise ValidationError("Invalid time (HH:MM)")


def combine_hhmm(day: date, value: str) -> datetime:
    return datetime.combine(day, parse_hhmm(value))


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch it easier.
    """
    return datetime.now()
