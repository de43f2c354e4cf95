"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Move a date forward by whole months.

    The day-of-month is pinned to `day` (default: the starting day) and
    clamped to the last valid day of the target month, so Jan 31 + 1 month
    lands on Feb 28/29.
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day or from_date.day, last_day))


def advance_periods(from_date: date, unit: str, periods: int, anchor_day: int | None = None) -> date:
    """Advance a date by a number of days, weeks or months"""
    if unit == "days":
        return from_date + timedelta(days=periods)
    if unit == "weeks":
        return from_date + timedelta(weeks=periods)
    if unit == "months":
        return add_months(from_date, periods, anchor_day)
    raise ValueError(f"Unsupported installment unit: {unit}")
