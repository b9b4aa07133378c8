from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from brokercal.models import BIRTHDAY, HOME_ANNIVERSARY, TASK, WEDDING_ANNIVERSARY, Lead, Task
from brokercal.projection import (
    events_on_day,
    filter_events,
    milestone_counts,
    project_events,
    search_events,
)

LA = ZoneInfo("America/Los_Angeles")


def _lead(lead_id: str = "l1", **kwargs) -> Lead:
    return Lead(id=lead_id, first_name=kwargs.pop("first_name", "Maya"), **kwargs)


def _task(task_id: str = "t1", due: str = "2026-01-06T17:00:00Z", **kwargs) -> Task:
    return Task(id=task_id, title=kwargs.pop("title", "Call lender"), due_date=due, **kwargs)


def test_birthday_uses_civil_date_in_displayed_year():
    events = project_events([_lead(dob="1985-03-14")], [], 2026, LA)

    assert len(events) == 1
    birthday = events[0]
    assert birthday.category == BIRTHDAY
    assert birthday.id == "dob-l1"
    assert birthday.title == "Maya's Birthday"
    assert birthday.start == datetime(2026, 3, 14, 9, 0, tzinfo=LA)
    assert birthday.end - birthday.start == timedelta(hours=1)
    assert birthday.source == "lead"
    assert birthday.source_id == "l1"


def test_birthday_timestamp_is_reinterpreted_in_los_angeles():
    # 02:00 UTC on the 14th is still the evening of the 13th in Los Angeles.
    events = project_events([_lead(dob="1985-03-14T02:00:00Z")], [], 2026, LA)

    assert events[0].start.date() == date(2026, 3, 13)


def test_lead_emits_one_event_per_populated_milestone():
    full = _lead("full", dob="1980-01-02", wedding_anniversary="2005-06-18", home_anniversary="2019-09-30")
    empty = _lead("empty")

    events = project_events([full, empty], [], 2026, LA)

    assert [e.category for e in events] == [BIRTHDAY, WEDDING_ANNIVERSARY, HOME_ANNIVERSARY]
    assert [e.start.hour for e in events] == [9, 10, 11]
    assert all(e.source_id == "full" for e in events)


def test_leap_day_birthday_rolls_to_march_first():
    events = project_events([_lead(dob="1992-02-29")], [], 2026, LA)

    assert events[0].start.date() == date(2026, 3, 1)


def test_deleted_leads_are_skipped():
    events = project_events([_lead(dob="1985-03-14", is_deleted=True)], [], 2026, LA)

    assert events == []


def test_task_without_end_lasts_exactly_one_hour():
    events = project_events([], [_task()], 2026, LA)

    assert len(events) == 1
    task = events[0]
    assert task.category == TASK
    assert task.id == "task-t1"
    assert task.start == datetime(2026, 1, 6, 9, 0, tzinfo=LA)
    assert task.end == task.start + timedelta(minutes=60)


def test_task_keeps_explicit_end_date():
    events = project_events([], [_task(end_date="2026-01-06T18:30:00Z")], 2026, LA)

    assert events[0].end == datetime(2026, 1, 6, 10, 30, tzinfo=LA)


def test_every_task_emits_one_event_regardless_of_year():
    tasks = [_task("a", "2025-12-30T16:00:00Z"), _task("b", "2026-02-01T16:00:00Z")]

    events = project_events([], tasks, 2026, LA)

    assert [e.id for e in events] == ["task-a", "task-b"]


def test_malformed_dates_drop_only_their_event(caplog):
    lead = _lead(dob="not a date", home_anniversary="2019-09-30")
    bad_task = _task("bad", due="31/12/2026")

    with caplog.at_level("WARNING"):
        events = project_events([lead], [bad_task, _task("ok")], 2026, LA)

    assert [e.id for e in events] == ["task-ok", "home-l1"]
    assert "not a date" in caplog.text
    assert "31/12/2026" in caplog.text


def test_task_without_due_date_is_logged_and_left_out(caplog):
    with caplog.at_level("WARNING"):
        events = project_events([], [_task("blank", due=""), _task("ok")], 2026, LA)

    assert [e.id for e in events] == ["task-ok"]
    assert "Skipping task blank: no due date" in caplog.text


def test_projection_is_idempotent():
    leads = [_lead(dob="1985-03-14", wedding_anniversary="2010-05-01")]
    tasks = [_task(), _task("t2", "2026-01-07T20:00:00Z", end_date="2026-01-07T21:15:00Z")]

    assert project_events(leads, tasks, 2026, LA) == project_events(leads, tasks, 2026, LA)


def test_filter_respects_visibility_and_query():
    events = project_events([_lead(dob="1985-01-06")], [_task(title="Escrow walkthrough")], 2026, LA)

    hidden_tasks = filter_events(events, {TASK: False})
    by_query = filter_events(events, query="ESCROW")
    by_description = filter_events(events, query="celebration")

    assert [e.category for e in hidden_tasks] == [BIRTHDAY]
    assert [e.category for e in by_query] == [TASK]
    assert [e.category for e in by_description] == [BIRTHDAY]


def test_search_is_empty_for_blank_query_and_capped():
    tasks = [_task(f"t{i}", title=f"Showing {i}") for i in range(12)]
    events = project_events([], tasks, 2026, LA)

    assert search_events(events, "   ") == []
    assert len(search_events(events, "showing")) == 8


def test_events_on_day_are_in_display_order():
    tasks = [
        _task("late", "2026-03-14T20:00:00Z", title="Late"),
        _task("early", "2026-03-14T15:00:00Z", title="Early"),
        _task("other", "2026-03-15T15:00:00Z", title="Other day"),
    ]
    events = project_events([_lead(dob="1985-03-14")], tasks, 2026, LA)

    on_day = events_on_day(events, date(2026, 3, 14), LA)

    assert [e.id for e in on_day] == ["task-early", "dob-l1", "task-late"]


def test_milestone_counts_for_today():
    leads = [
        _lead("a", dob="1985-03-14"),
        _lead("b", dob="1990-03-14", home_anniversary="2020-03-14"),
        _lead("c", wedding_anniversary="2001-07-04"),
        _lead("d", dob="1970-03-14", is_deleted=True),
    ]
    tasks = [_task("open"), _task("done", is_completed=True)]

    counts = milestone_counts(leads, tasks, date(2026, 3, 14), LA)

    assert counts == {
        "todos": 1,
        "birthdays": 2,
        "wedding_anniversaries": 0,
        "home_anniversaries": 1,
    }
