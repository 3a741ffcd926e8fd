"""Day and month arithmetic on naive local datetimes."""

from __future__ import annotations

import calendar as _calendar
from datetime import datetime, time, timedelta

# Fixed English names: archive bucket names must not depend on the process locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(moment: datetime) -> datetime:
    """Last representable instant of *moment*'s day (inclusive upper bound)."""
    return datetime.combine(moment.date(), time.max)


def previous_month(year: int, month: int) -> tuple[int, int]:
    """(year, month) of the calendar month before the given one. January rolls back a year."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """First instant and last instant (inclusive) of a calendar month."""
    last_day = _calendar.monthrange(year, month)[1]
    first = datetime(year, month, 1)
    return first, end_of_day(datetime(year, month, last_day))


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1]


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole calendar days from *earlier*'s day to *later*'s day."""
    return (later.date() - earlier.date()).days


def days_ago(moment: datetime, days: int) -> datetime:
    """Start of the day *days* calendar days before *moment*."""
    return start_of_day(moment) - timedelta(days=days)
