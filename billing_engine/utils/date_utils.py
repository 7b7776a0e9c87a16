"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)"""
    return (end - start).days


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)


def add_months(from_date: date, months: int) -> date:
    """
    Advance a date by calendar months.

    The day of month is kept when the target month has it and clamped to the
    target month's last day otherwise (Jan 31 + 1 month -> Feb 29 in 2024).
    """
    year = from_date.year + (from_date.month - 1 + months) // 12
    month = (from_date.month - 1 + months) % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Calendar-month distance, ignoring day of month"""
    return (end.year * 12 + end.month) - (start.year * 12 + start.month)
