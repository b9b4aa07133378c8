from __future__ import annotations

import logging
import os
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

import requests
from dotenv import load_dotenv

from .config import AppConfig, load_config
from .grid import DAY, MONTH, WEEK, month_start, week_dates
from .models import CATEGORIES, CalendarEvent
from .projection import filter_events, milestone_counts, project_events, search_events
from .render import render_day, render_month, render_signature, render_week
from .sources import BackendClient, Records, load_records
from .view_state import ViewState, load_state, save_state

STATE_PATH_DEFAULT = "state/brokercal.json"
CONFIG_PATH_DEFAULT = "config.yaml"


def _load_records(cfg: AppConfig, data_path: Optional[str]) -> Records:
    if data_path:
        return load_records(data_path)
    if not cfg.backend.enabled:
        print("No --data file given and backend disabled; rendering an empty calendar.")
        return Records()
    api_key = os.environ.get("BROKERCAL_BACKEND_KEY", "")
    if not api_key:
        print("Backend enabled but BROKERCAL_BACKEND_KEY not set; skipping backend.")
        return Records()
    try:
        client = BackendClient(cfg.backend.url, api_key, timeout=cfg.backend.timeout_seconds)
        return client.fetch_records(cfg.backend.leads_table, cfg.backend.tasks_table, cfg.backend.brokerage_id)
    except (requests.RequestException, ValueError) as e:
        print(f"Backend fetch failed; continuing without records. Error: {e}")
        return Records()


def _apply_navigation(
    state: ViewState,
    cfg: AppConfig,
    today: date,
    view: Optional[str],
    day: Optional[date],
    zoom_steps: int,
    navigate: int,
    go_today: bool,
    month: Optional[int] = None,
) -> ViewState:
    zoom = cfg.day_grid.zoom
    if view:
        state = state.set_view_mode(view.upper())
    if go_today:
        state = state.go_today(today)
    if day is not None:
        state = state.select_day(day)
    if month is not None:
        state = state.select_month(month - 1, today)
    if navigate:
        state = state.navigate(navigate, today)
    for _ in range(abs(zoom_steps)):
        if zoom_steps > 0:
            state = state.with_zoom_in(zoom.step, zoom.min, zoom.max)
        else:
            state = state.with_zoom_out(zoom.step, zoom.min, zoom.max)
    return state


def _apply_filters(
    state: ViewState,
    query: Optional[str],
    hide: Sequence[str],
    show: Sequence[str],
) -> ViewState:
    if query is not None:
        state = state.set_query(query)
    for category in hide:
        if state.visibility.get(category, True):
            state = state.toggle_category(category)
    for category in show:
        if not state.visibility.get(category, True):
            state = state.toggle_category(category)
    return state


def _visible_range(view_mode: str, anchor: date):
    if view_mode == MONTH:
        first = month_start(anchor.year, anchor.month - 1)
        next_first = month_start(anchor.year, anchor.month)
        return first, next_first - timedelta(days=1)
    if view_mode == WEEK:
        days = week_dates(anchor)
        return days[0], days[-1]
    return anchor, anchor


def _events_for_view(events: List[CalendarEvent], view_mode: str, anchor: date, tz: ZoneInfo) -> List[CalendarEvent]:
    first, last = _visible_range(view_mode, anchor)
    return [e for e in events if first <= e.start.astimezone(tz).date() <= last]


def run_once(
    config_path: str = CONFIG_PATH_DEFAULT,
    state_path: str = STATE_PATH_DEFAULT,
    data_path: Optional[str] = None,
    view: Optional[str] = None,
    day: Optional[date] = None,
    zoom_steps: int = 0,
    navigate: int = 0,
    go_today: bool = False,
    force: bool = False,
    output_path: Optional[str] = None,
    now: Optional[datetime] = None,
    month: Optional[int] = None,
    query: Optional[str] = None,
    hide: Sequence[str] = (),
    show: Sequence[str] = (),
) -> Optional[str]:
    load_dotenv()
    cfg = load_config(config_path)
    tz = ZoneInfo(cfg.timezone)
    now = now.astimezone(tz) if now is not None else datetime.now(tz=tz)
    today = now.date()

    state = load_state(state_path)
    if not Path(state_path).exists() and view is None:
        state = state.set_view_mode(cfg.default_view)
    state = _apply_navigation(state, cfg, today, view, day, zoom_steps, navigate, go_today, month)
    state = _apply_filters(state, query, hide, show)
    anchor = state.current_day(today)

    records = _load_records(cfg, data_path)
    events = project_events(records.leads, records.tasks, anchor.year, tz)
    if state.view_mode == WEEK:
        # A week can straddle New Year; milestones are projected per year.
        for year in {d.year for d in week_dates(anchor)} - {anchor.year}:
            events.extend(project_events(records.leads, [], year, tz))
    if state.query.strip():
        matches = search_events(events, state.query, state.visibility)
        print(f"Search {state.query!r} matched {len(matches)}: " + "; ".join(e.title for e in matches))
    events = filter_events(events, state.visibility, state.query)
    visible = _events_for_view(events, state.view_mode, anchor, tz)

    counts = milestone_counts(records.leads, records.tasks, today, tz)
    grid = cfg.day_grid.grid(state.zoom)
    now_offset = None
    if state.view_mode == DAY and anchor == today:
        now_offset = grid.now_offset(now.replace(second=0, microsecond=0))
    sig = render_signature(tz, state.view_mode, anchor, grid.zoom, visible, today, now_offset)
    print(
        f"Projected {len(events)} events ({len(visible)} in view); view={state.view_mode}, "
        f"date={anchor.isoformat()}, zoom={grid.zoom}, todos={counts['todos']}, "
        f"birthdays_today={counts['birthdays']}, force={force}"
    )

    output = output_path or cfg.display.output_path
    if not force and sig == state.last_hash and Path(output).exists():
        print("No calendar change; skipping render")
        save_state(state_path, state)
        return None

    if state.view_mode == MONTH:
        img = render_month(
            canvas_w=cfg.display.width,
            canvas_h=cfg.display.month_height,
            now=now,
            year=anchor.year,
            month_index=anchor.month - 1,
            events=visible,
            tz=tz,
        )
    elif state.view_mode == WEEK:
        img = render_week(cfg.display.width, now, anchor, visible, tz, grid)
    else:
        img = render_day(cfg.display.width, now, anchor, visible, tz, grid)

    out = Path(output)
    out.parent.mkdir(parents=True, exist_ok=True)
    img.save(out)

    state.last_hash = sig
    state.last_rendered_iso = now.isoformat()
    save_state(state_path, state)
    return str(out)


def main():
    import argparse

    ap = argparse.ArgumentParser(description="Render the brokerage calendar to an image.")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--state", default=STATE_PATH_DEFAULT)
    ap.add_argument("--data", help="JSON export with leads and tasks; defaults to the backend")
    ap.add_argument("--view", choices=["day", "week", "month"])
    ap.add_argument("--date", type=date.fromisoformat, help="YYYY-MM-DD to show")
    ap.add_argument("--month", type=int, choices=range(1, 13), help="jump to this month of the current year")
    ap.add_argument("--zoom-in", action="count", default=0)
    ap.add_argument("--zoom-out", action="count", default=0)
    ap.add_argument("--prev", action="count", default=0)
    ap.add_argument("--next", action="count", default=0)
    ap.add_argument("--today", action="store_true")
    ap.add_argument("--query", help="only show events whose title or description contains this; '' clears it")
    ap.add_argument("--hide", action="append", default=[], type=str.upper, choices=CATEGORIES, metavar="CATEGORY")
    ap.add_argument("--show", action="append", default=[], type=str.upper, choices=CATEGORIES, metavar="CATEGORY")
    ap.add_argument("--force", action="store_true")
    ap.add_argument("--output")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    run_once(
        config_path=args.config,
        state_path=args.state,
        data_path=args.data,
        view=args.view,
        day=args.date,
        zoom_steps=args.zoom_in - args.zoom_out,
        navigate=args.next - args.prev,
        go_today=args.today,
        force=args.force,
        output_path=args.output,
        month=args.month,
        query=args.query,
        hide=args.hide,
        show=args.show,
    )


if __name__ == "__main__":
    main()
