from __future__ import annotations
import re
from datetime import date, datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "America/Los_Angeles"

_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidDateError(ValueError):
    def __init__(self, value: str):
        super().__init__(f"Unparseable date value: {value!r}")
        self.value = value


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def parse_timestamp(value: Optional[str], tz: ZoneInfo) -> Optional[datetime]:
    """Parse a stored timestamp into an aware datetime in ``tz``.

    Values with an offset (or a trailing ``Z``) are converted into ``tz``.
    Naive values are wall-clock time in ``tz``. Date-only values mean local
    midnight. Empty values return None.
    """
    s = _clean(value)
    if not s:
        return None
    if _DATE_ONLY_RE.match(s):
        return datetime.combine(_parse_date(s), time.min, tzinfo=tz)
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError as exc:
        raise InvalidDateError(_clean(value)) from exc
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def civil_date(value: Optional[str], tz: ZoneInfo) -> Optional[date]:
    """Return the calendar date a stored date field denotes in ``tz``.

    Date-only strings are already civil dates and are never shifted, even
    though a UTC-midnight reading of them would land on the previous day in
    a western timezone.
    """
    s = _clean(value)
    if not s:
        return None
    if _DATE_ONLY_RE.match(s):
        return _parse_date(s)
    dt = parse_timestamp(s, tz)
    return dt.date() if dt is not None else None


def at_wall_clock(day: date, hour: int, tz: ZoneInfo, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour=hour, minute=minute), tzinfo=tz)


def _parse_date(s: str) -> date:
    try:
        return date.fromisoformat(s)
    except ValueError as exc:
        raise InvalidDateError(s) from exc
