"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import List, Tuple


def month_start(day: date) -> date:
    return day.replace(day=1)


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def month_end(day: date) -> date:
    return day.replace(day=days_in_month(day))


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def month_sequence(end: date, count: int) -> List[Tuple[int, int]]:
    """(year, month) pairs for the `count` months ending with end's month, oldest first"""
    return [
        (shifted.year, shifted.month)
        for shifted in (add_months(month_start(end), -offset) for offset in range(count - 1, -1, -1))
    ]


def format_months(months: int) -> str:
    """Human readable duration, e.g. 2 years 3 months"""
    years, rest = divmod(max(months, 0), 12)
    parts = []
    if years:
        parts.append(f"{years} year{'s' if years != 1 else ''}")
    if rest or not parts:
        parts.append(f"{rest} month{'s' if rest != 1 else ''}")
    return " ".join(parts)
