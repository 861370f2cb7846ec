"""
Calendar arithmetic for budgets, schedules, forecasts and reports.

All functions are pure and operate on timezone-aware UTC datetimes.  Period
windows are half-open: ``start <= t < end``.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Iterator

from wallet_ledger.exceptions import InvalidDateRangeError, InvalidPeriodTypeError


class PeriodType(str, Enum):
    """Length of a budget or report bucket."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: "str | PeriodType") -> "PeriodType":
        if isinstance(value, PeriodType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidPeriodTypeError(value) from None


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date(value: str) -> datetime:
    """
    Parse ``YYYY-MM-DD`` (midnight UTC) or a full ISO-8601 timestamp.

    Raises:
        ValueError: If the string is neither.
    """
    text = value.strip()
    if len(text) == 10:
        return datetime.combine(date.fromisoformat(text), time(0), tzinfo=timezone.utc)
    return ensure_utc(datetime.fromisoformat(text))


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def add_months(value: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month -> Feb 29 (leap year) / Feb 28.  Time of day is kept.
    """
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    """Add calendar years; Feb 29 falls back to Feb 28 in non-leap years."""
    return add_months(value, years * 12)


def period_window(period: PeriodType, as_of: datetime) -> tuple[datetime, datetime]:
    """
    Return the window of ``period`` containing ``as_of``.

    weekly: ISO week (Monday 00:00 to next Monday 00:00)
    monthly: first of the month to first of the next month
    yearly: Jan 1 to Jan 1 of the next year
    """
    day_start = start_of_day(ensure_utc(as_of))
    if period is PeriodType.WEEKLY:
        start = day_start - timedelta(days=day_start.weekday())
        return start, start + timedelta(days=7)
    if period is PeriodType.MONTHLY:
        start = day_start.replace(day=1)
        return start, add_months(start, 1)
    start = day_start.replace(month=1, day=1)
    return start, add_years(start, 1)


def previous_window(period: PeriodType, window_start: datetime) -> tuple[datetime, datetime]:
    """Return the window immediately before the one starting at ``window_start``."""
    return period_window(period, window_start - timedelta(microseconds=1))


def iter_windows(
    period: PeriodType, start: datetime, end: datetime
) -> Iterator[tuple[datetime, datetime]]:
    """
    Yield consecutive period windows covering ``[start, end)``.

    The first and last windows are clipped to the range.

    Raises:
        InvalidDateRangeError: If end is before start.
    """
    if end < start:
        raise InvalidDateRangeError(start, end)
    cursor = start
    while cursor < end:
        _, window_end = period_window(period, cursor)
        yield cursor, min(window_end, end)
        cursor = window_end
