from __future__ import annotations
import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from .civil import InvalidDateError, at_wall_clock, civil_date, parse_timestamp
from .layout import DEFAULT_DURATION
from .models import (
    BIRTHDAY,
    CATEGORIES,
    HOME_ANNIVERSARY,
    TASK,
    WEDDING_ANNIVERSARY,
    CalendarEvent,
    Lead,
    Task,
)

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 8

# (category, lead attribute, id prefix, title suffix, description, start hour)
_MILESTONES = (
    (BIRTHDAY, "dob", "dob", "Birthday", "Client Birthday Celebration", 9),
    (WEDDING_ANNIVERSARY, "wedding_anniversary", "wedding", "Wedding Anniversary", "Client Wedding Anniversary", 10),
    (HOME_ANNIVERSARY, "home_anniversary", "home", "Home Anniversary", "Client Home Anniversary", 11),
)


def _anniversary_in(year: int, original: date) -> date:
    # Feb 29 rolls over to Mar 1 in non-leap years.
    try:
        return original.replace(year=year)
    except ValueError:
        return date(year, 3, 1)


def _milestone_events(lead: Lead, year: int, tz: ZoneInfo) -> List[CalendarEvent]:
    events: List[CalendarEvent] = []
    for category, attr, prefix, label, description, hour in _MILESTONES:
        raw = getattr(lead, attr)
        if not raw:
            continue
        try:
            original = civil_date(raw, tz)
        except InvalidDateError as e:
            logger.warning("Skipping %s for lead %s: %s", attr, lead.id, e)
            continue
        if original is None:
            continue
        start = at_wall_clock(_anniversary_in(year, original), hour, tz)
        events.append(CalendarEvent(
            id=f"{prefix}-{lead.id}",
            category=category,
            title=f"{lead.first_name}'s {label}",
            description=description,
            start=start,
            end=start + DEFAULT_DURATION,
            source="lead",
            source_id=lead.id,
            lead_id=lead.id,
        ))
    return events


def _task_event(task: Task, tz: ZoneInfo) -> Optional[CalendarEvent]:
    try:
        start = parse_timestamp(task.due_date, tz)
        end = parse_timestamp(task.end_date, tz)
    except InvalidDateError as e:
        logger.warning("Skipping task %s: %s", task.id, e)
        return None
    if start is None:
        logger.warning("Skipping task %s: no due date", task.id)
        return None
    return CalendarEvent(
        id=f"task-{task.id}",
        category=TASK,
        title=task.title,
        description=task.description or "",
        start=start,
        end=end if end is not None else start + DEFAULT_DURATION,
        source="task",
        source_id=task.id,
        priority=task.priority,
        lead_id=task.lead_id,
        is_completed=task.is_completed,
    )


def project_events(
    leads: Iterable[Lead],
    tasks: Iterable[Task],
    year: int,
    tz: ZoneInfo,
) -> List[CalendarEvent]:
    """Build the unified calendar event list for the displayed ``year``.

    Tasks come first, then lead milestones, in input order. Records are never
    mutated; a date that cannot be parsed drops only the event it would have
    produced. A task with an empty or unparseable due date (or an unparseable
    end date) therefore yields no event at all and is only logged.
    """
    events: List[CalendarEvent] = []
    for task in tasks:
        event = _task_event(task, tz)
        if event is not None:
            events.append(event)
    for lead in leads:
        if lead.is_deleted:
            continue
        events.extend(_milestone_events(lead, year, tz))
    return events


def event_sort_key(e: CalendarEvent):
    return (e.start, CATEGORIES.index(e.category), e.title.lower())


def sort_events(events: Iterable[CalendarEvent]) -> List[CalendarEvent]:
    return sorted(events, key=event_sort_key)


def _matches_query(e: CalendarEvent, query: str) -> bool:
    q = query.strip().lower()
    if not q:
        return True
    return q in e.title.lower() or q in e.description.lower()


def filter_events(
    events: Iterable[CalendarEvent],
    visibility: Optional[Dict[str, bool]] = None,
    query: str = "",
) -> List[CalendarEvent]:
    visibility = visibility or {}
    return [
        e for e in events
        if visibility.get(e.category, True) and _matches_query(e, query)
    ]


def search_events(
    events: Iterable[CalendarEvent],
    query: str,
    visibility: Optional[Dict[str, bool]] = None,
    limit: int = SEARCH_LIMIT,
) -> List[CalendarEvent]:
    if not query.strip():
        return []
    return filter_events(events, visibility, query)[:limit]


def events_on_day(events: Iterable[CalendarEvent], day: date, tz: ZoneInfo) -> List[CalendarEvent]:
    return sort_events(e for e in events if e.start.astimezone(tz).date() == day)


def events_in_range(events: Iterable[CalendarEvent], first: date, last: date, tz: ZoneInfo) -> Dict[date, List[CalendarEvent]]:
    """Group events by civil start date for every day in ``first..last``."""
    by_day: Dict[date, List[CalendarEvent]] = {}
    day = first
    while day <= last:
        by_day[day] = []
        day += timedelta(days=1)
    for e in sort_events(events):
        d = e.start.astimezone(tz).date()
        if d in by_day:
            by_day[d].append(e)
    return by_day


def _falls_on(raw: Optional[str], today: date, tz: ZoneInfo) -> bool:
    if not raw:
        return False
    try:
        d = civil_date(raw, tz)
    except InvalidDateError:
        return False
    return d is not None and (d.month, d.day) == (today.month, today.day)


def milestone_counts(leads: Iterable[Lead], tasks: Iterable[Task], today: date, tz: ZoneInfo) -> Dict[str, int]:
    """Dashboard tallies: open tasks plus milestones that fall on ``today``."""
    active = [lead for lead in leads if not lead.is_deleted]
    return {
        "todos": sum(1 for t in tasks if not t.is_completed),
        "birthdays": sum(1 for lead in active if _falls_on(lead.dob, today, tz)),
        "wedding_anniversaries": sum(1 for lead in active if _falls_on(lead.wedding_anniversary, today, tz)),
        "home_anniversaries": sum(1 for lead in active if _falls_on(lead.home_anniversary, today, tz)),
    }
