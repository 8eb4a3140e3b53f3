from __future__ import annotations

import calendar
import math
from datetime import date, timedelta

MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def days_between(start: date, end: date) -> int:
    """
    Signed number of calendar days from start to end.

    Uses date ordinals, so there is no time-of-day component and DST
    transitions cannot produce fractional days.
    """
    return end.toordinal() - start.toordinal()


def round_days(value: float) -> int:
    """Round a fractional day count to the nearest whole day, halves away from zero."""
    magnitude = math.floor(abs(value) + 0.5)
    return magnitude if value >= 0 else -magnitude


def date_to_x(day: date, timeline_start: date, pixels_per_day: float) -> float:
    return days_between(timeline_start, day) * pixels_per_day


def x_to_date(x: float, timeline_start: date, pixels_per_day: float) -> date:
    """Inverse of date_to_x, rounded to the nearest whole day."""
    if pixels_per_day <= 0:
        raise ValueError(f"pixels_per_day must be positive, got {pixels_per_day}")
    return timeline_start + timedelta(days=round_days(x / pixels_per_day))


def shift_days(day: date, delta_days: float) -> date:
    return day + timedelta(days=round_days(delta_days))


def month_start(day: date) -> date:
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """First day of the month `months` after the month containing day."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def week_start(day: date) -> date:
    """Monday on or before day."""
    return day - timedelta(days=day.weekday())


def enumerate_months(start: date, end: date) -> list[date]:
    """Month starts covering start..end, including partial boundary months."""
    months: list[date] = []
    current = month_start(start)
    last = month_start(end)
    while current <= last:
        months.append(current)
        current = add_months(current, 1)
    return months


def enumerate_weeks(start: date, end: date) -> list[date]:
    """Monday week starts; the first entry backs up to the Monday on or before start."""
    weeks: list[date] = []
    current = week_start(start)
    while current <= end:
        weeks.append(current)
        current += timedelta(days=7)
    return weeks


def enumerate_days(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range(days_between(start, end) + 1)]


def month_year_label(day: date) -> str:
    return f"{day.year} {MONTHS[day.month - 1]}"


def format_date_short(day: date) -> str:
    """Compact yy/m/d label used next to markers, e.g. 24/7/22."""
    return f"{day.year % 100:02d}/{day.month}/{day.day}"
