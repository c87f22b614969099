from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, datetime, str, None]


def add_months(base: date, months: int) -> date:
    """
    Add a number of calendar months to a date.

    The day is clamped to the last valid day of the target month
    (Jan 31 + 1 month -> Feb 28/29). Zero returns the date unchanged and a
    negative count moves backward with the same clamping.
    """
    if months == 0:
        return base

    total = base.month - 1 + months
    year = base.year + total // 12
    month = total % 12 + 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_until(target: Optional[date], today: date) -> Optional[int]:
    """
    Signed number of calendar days from `today` to `target`.

    Negative means the date is in the past; None when there is no date.
    """
    if target is None:
        return None
    return (target - today).days


def parse_iso_date(value: DateLike) -> Optional[date]:
    """
    Lenient YYYY-MM-DD parser. Empty or malformed input yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def format_iso_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    return value.isoformat()


def first_of_month(value: date) -> date:
    return value.replace(day=1)
