from __future__ import annotations
from datetime import date, timedelta
from typing import List, Optional

MONTH = "MONTH"
WEEK = "WEEK"
DAY = "DAY"
VIEW_MODES = (MONTH, WEEK, DAY)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
DAY_NAMES = ["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"]


def month_start(year: int, month_index: int) -> date:
    # month_index is zero-based and may overflow in either direction
    y, m = divmod(month_index, 12)
    return date(year + y, m + 1, 1)


def days_in_month(year: int, month_index: int) -> int:
    # "day zero" of the next month is the last day of this one
    return (month_start(year, month_index + 1) - timedelta(days=1)).day


def sunday_weekday(d: date) -> int:
    """Weekday index with Sunday = 0 ... Saturday = 6."""
    return (d.weekday() + 1) % 7


def month_cells(year: int, month_index: int) -> List[Optional[int]]:
    first = month_start(year, month_index)
    cells: List[Optional[int]] = [None] * sunday_weekday(first)
    cells.extend(range(1, days_in_month(year, month_index) + 1))
    return cells


def month_weeks(year: int, month_index: int) -> List[List[Optional[int]]]:
    cells = month_cells(year, month_index)
    return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def month_title(year: int, month_index: int) -> str:
    first = month_start(year, month_index)
    return f"{MONTH_NAMES[first.month - 1]} {first.year}"


def week_dates(day: date) -> List[date]:
    sunday = day - timedelta(days=sunday_weekday(day))
    return [sunday + timedelta(days=i) for i in range(7)]


def add_months(day: date, delta: int) -> date:
    first = month_start(day.year, day.month - 1 + delta)
    return first.replace(day=min(day.day, days_in_month(first.year, first.month - 1)))


def shift(day: date, view_mode: str, delta: int) -> date:
    """Move ``day`` by ``delta`` units of the view: months, weeks or days."""
    if view_mode == MONTH:
        return add_months(day, delta)
    if view_mode == WEEK:
        return day + timedelta(days=7 * delta)
    if view_mode == DAY:
        return day + timedelta(days=delta)
    raise ValueError(f"Unknown view mode: {view_mode!r}")
