from __future__ import annotations
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional
import json

from .grid import MONTH, VIEW_MODES, add_months, shift
from .layout import MAX_ZOOM, MIN_ZOOM, ZOOM_STEP, clamp_zoom
from .models import CATEGORIES


def _all_visible() -> Dict[str, bool]:
    return {c: True for c in CATEGORIES}


@dataclass
class ViewState:
    view_mode: str = MONTH
    current_date: str = ""                # YYYY-MM-DD; empty means "today"
    zoom: float = 1.0
    selected_event_id: str = ""
    query: str = ""
    visibility: Dict[str, bool] = field(default_factory=_all_visible)
    last_hash: str = ""
    last_rendered_iso: str = ""

    def current_day(self, today: date) -> date:
        if not self.current_date:
            return today
        return date.fromisoformat(self.current_date)

    def _at(self, day: date) -> "ViewState":
        return replace(self, current_date=day.isoformat())

    def with_zoom_in(self, step: float = ZOOM_STEP, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> "ViewState":
        return replace(self, zoom=clamp_zoom(self.zoom + step, min_zoom, max_zoom))

    def with_zoom_out(self, step: float = ZOOM_STEP, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> "ViewState":
        return replace(self, zoom=clamp_zoom(self.zoom - step, min_zoom, max_zoom))

    def navigate(self, delta: int, today: date) -> "ViewState":
        return self._at(shift(self.current_day(today), self.view_mode, delta))

    def go_today(self, today: date) -> "ViewState":
        return self._at(today)

    def select_day(self, day: date) -> "ViewState":
        return replace(self._at(day), selected_event_id="")

    def select_month(self, month_index: int, today: date) -> "ViewState":
        current = self.current_day(today)
        return self._at(add_months(current, month_index - (current.month - 1)))

    def change_year(self, delta: int, today: date) -> "ViewState":
        return self._at(add_months(self.current_day(today), 12 * delta))

    def set_view_mode(self, view_mode: str) -> "ViewState":
        if view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {view_mode!r}")
        return replace(self, view_mode=view_mode)

    def toggle_category(self, category: str) -> "ViewState":
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category: {category!r}")
        visibility = dict(self.visibility)
        visibility[category] = not visibility.get(category, True)
        return replace(self, visibility=visibility)

    def set_query(self, query: str) -> "ViewState":
        return replace(self, query=query)

    def select_event(self, event_id: Optional[str]) -> "ViewState":
        return replace(self, selected_event_id=event_id or "")


def load_state(path: str) -> ViewState:
    p = Path(path)
    if not p.exists():
        return ViewState()
    data: Dict[str, Any] = json.loads(p.read_text(encoding="utf-8"))
    view_mode = str(data.get("view_mode", MONTH)).upper()
    visibility = _all_visible()
    visibility.update({k: bool(v) for k, v in (data.get("visibility") or {}).items() if k in visibility})
    return ViewState(
        view_mode=view_mode if view_mode in VIEW_MODES else MONTH,
        current_date=str(data.get("current_date", "")),
        zoom=clamp_zoom(float(data.get("zoom", 1.0))),
        selected_event_id=str(data.get("selected_event_id", "")),
        query=str(data.get("query", "")),
        visibility=visibility,
        last_hash=str(data.get("last_hash", "")),
        last_rendered_iso=str(data.get("last_rendered_iso", "")),
    )


def save_state(path: str, state: ViewState) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(asdict(state), indent=2), encoding="utf-8")
