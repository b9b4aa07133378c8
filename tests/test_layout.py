from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from brokercal.layout import DayGrid, clamp_zoom
from brokercal.models import TASK, CalendarEvent

LA = ZoneInfo("America/Los_Angeles")


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 1, 6, hour, minute, tzinfo=LA)


def _event(start: datetime, end=None) -> CalendarEvent:
    return CalendarEvent(
        id="task-1",
        category=TASK,
        title="Listing appointment",
        start=start,
        end=end,
        source="task",
        source_id="1",
    )


def test_one_hour_event_at_ten_is_four_hours_below_window_start():
    grid = DayGrid()

    assert grid.layout(_at(10), _at(11)) == (400, 100)


def test_zoom_scales_offset_and_height():
    grid = DayGrid(zoom=2.0)

    top, height = grid.layout(_at(10), _at(11))

    assert top == pytest.approx(800)
    assert height == pytest.approx(200)


def test_short_events_get_half_slot_floor():
    grid = DayGrid()

    top, height = grid.layout(_at(9), _at(9, 10))

    assert top == pytest.approx(300)
    assert height == pytest.approx(50)


def test_missing_or_inverted_end_defaults_to_one_hour():
    grid = DayGrid(zoom=0.6)

    assert grid.layout(_at(8), None)[1] == pytest.approx(60)
    assert grid.layout(_at(8), _at(7))[1] == pytest.approx(60)


def test_layout_event_reports_visibility():
    grid = DayGrid()

    inside = grid.layout_event(_event(_at(21, 30)))
    before = grid.layout_event(_event(_at(4), _at(5, 30)))

    assert inside.visible
    assert inside.event_id == "task-1"
    assert not before.visible
    assert before.top == pytest.approx(-200)


def test_event_starting_before_window_is_cut_to_one_hour():
    grid = DayGrid()

    top, height = grid.layout(_at(5), _at(7))
    box = grid.layout_event(_event(_at(5, 30), _at(8)))

    assert top == pytest.approx(-100)
    assert height == pytest.approx(100)
    assert box.top == pytest.approx(-50)
    assert box.height == pytest.approx(100)
    assert box.visible
    assert not grid.layout_event(_event(_at(5), _at(7))).visible


@pytest.mark.parametrize("steps", [1, 3, 7, 25])
def test_zoom_stays_within_bounds(steps):
    grid = DayGrid()
    zoomed_in = grid
    zoomed_out = grid
    for _ in range(steps):
        zoomed_in = zoomed_in.zoom_in()
        zoomed_out = zoomed_out.zoom_out()

    assert 0.6 <= zoomed_in.zoom <= 2.0
    assert 0.6 <= zoomed_out.zoom <= 2.0
    if steps >= 5:
        assert zoomed_in.zoom == 2.0
    if steps >= 2:
        assert zoomed_out.zoom == 0.6


def test_constructor_and_clamp_bound_zoom():
    assert DayGrid(zoom=5).zoom == 2.0
    assert DayGrid(zoom=0.1).zoom == 0.6
    assert clamp_zoom(1.0000000002) == 1.0


def test_invalid_window_is_rejected():
    with pytest.raises(ValueError):
        DayGrid(start_hour=22, end_hour=6)


def test_now_offset_only_inside_window():
    grid = DayGrid()

    assert grid.now_offset(_at(12, 30)) == pytest.approx(650)
    assert grid.now_offset(_at(5, 59)) is None
    assert grid.now_offset(_at(23, 0)) is None
    assert grid.grid_height() == pytest.approx(1600)


def test_layout_day_keeps_input_order():
    grid = DayGrid(zoom=0.6)
    first = _event(_at(14))
    second = CalendarEvent(
        id="dob-7", category="BIRTHDAY", title="Birthday", start=_at(9), end=_at(10),
        source="lead", source_id="7",
    )

    boxes = grid.layout_day([first, second])

    assert [b.event_id for b in boxes] == ["task-1", "dob-7"]
    assert boxes[1].top == pytest.approx(180)
    assert boxes[1].height == pytest.approx(60)
