"""
periods.py — Monthly partition keys and the weekly reporting window.

Every persisted aggregate is bucketed under the first day of its month.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Tuple, Union

from opsboard.services.errors import KPIValidationError

DateLike = Union[date, datetime, str]


def to_date(value: DateLike) -> date:
    """Coerce a date, datetime or ISO string ("2025-03-14", "2025-03-14T08:00:00")."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise KPIValidationError(f"Not a date: {value!r}")


def month_key(value: DateLike) -> date:
    """Canonical first-of-month key for any date in that month."""
    d = to_date(value)
    return d.replace(day=1)


def month_bounds(value: DateLike) -> Tuple[date, date]:
    """First and last calendar day of the month containing ``value``."""
    first = month_key(value)
    last_day = calendar.monthrange(first.year, first.month)[1]
    return first, first.replace(day=last_day)


def in_month(value: DateLike, key: DateLike) -> bool:
    return month_key(value) == month_key(key)


def week_key(value: DateLike) -> date:
    """Monday of the ISO week containing ``value``."""
    d = to_date(value)
    return d - timedelta(days=d.weekday())


def iso_week_number(value: DateLike) -> int:
    return to_date(value).isocalendar()[1]


def week_bounds(value: DateLike) -> Tuple[date, date]:
    start = week_key(value)
    return start, start + timedelta(days=6)


def records_in_window(records: Iterable[Any], start: DateLike, end: DateLike) -> List[Any]:
    """Records (objects or dicts with a ``date``) falling in [start, end], inclusive."""
    lo, hi = to_date(start), to_date(end)
    selected = []
    for rec in records:
        raw = rec.get("date") if isinstance(rec, dict) else getattr(rec, "date", None)
        if raw is None:
            continue
        if lo <= to_date(raw) <= hi:
            selected.append(rec)
    return selected
