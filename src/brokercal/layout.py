from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from .models import CalendarEvent

BASE_PX_PER_HOUR = 100.0
WINDOW_START_HOUR = 6
WINDOW_END_HOUR = 22
MIN_ZOOM = 0.6
MAX_ZOOM = 2.0
ZOOM_STEP = 0.2
DEFAULT_DURATION = timedelta(hours=1)


@dataclass(frozen=True)
class EventBox:
    event_id: str
    top: float
    height: float
    visible: bool = True


def clamp_zoom(zoom: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    # Rounded so repeated steps never drift past a bound.
    return round(min(max_zoom, max(min_zoom, float(zoom))), 2)


def effective_end(start: datetime, end: Optional[datetime], window_start: Optional[datetime] = None) -> datetime:
    # No usable end, or a start before the window: one hour from start.
    if end is None or end <= start or (window_start is not None and start < window_start):
        return start + DEFAULT_DURATION
    return end


@dataclass(frozen=True)
class DayGrid:
    """Vertical geometry of the single-day schedule view."""

    start_hour: int = WINDOW_START_HOUR
    end_hour: int = WINDOW_END_HOUR
    base_px_per_hour: float = BASE_PX_PER_HOUR
    zoom: float = 1.0
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(f"Invalid day window {self.start_hour}:00-{self.end_hour}:00")
        object.__setattr__(self, "zoom", clamp_zoom(self.zoom, self.min_zoom, self.max_zoom))

    @property
    def px_per_hour(self) -> float:
        return self.base_px_per_hour * self.zoom

    @property
    def hours(self) -> List[int]:
        return list(range(self.start_hour, self.end_hour))

    def grid_height(self) -> float:
        return (self.end_hour - self.start_hour) * self.px_per_hour

    def zoom_in(self) -> "DayGrid":
        return replace(self, zoom=clamp_zoom(self.zoom + self.zoom_step, self.min_zoom, self.max_zoom))

    def zoom_out(self) -> "DayGrid":
        return replace(self, zoom=clamp_zoom(self.zoom - self.zoom_step, self.min_zoom, self.max_zoom))

    def window_start(self, moment: datetime) -> datetime:
        return moment.replace(hour=self.start_hour, minute=0, second=0, microsecond=0)

    def offset_for(self, moment: datetime) -> float:
        minutes = (moment - self.window_start(moment)).total_seconds() / 60
        return minutes * self.px_per_hour / 60

    def layout(self, start: datetime, end: Optional[datetime]) -> tuple[float, float]:
        end = effective_end(start, end, self.window_start(start))
        top = self.offset_for(start)
        duration_minutes = (end - start).total_seconds() / 60
        height = max(self.px_per_hour / 2, duration_minutes * self.px_per_hour / 60)
        return top, height

    def layout_event(self, event: CalendarEvent) -> EventBox:
        top, height = self.layout(event.start, event.end)
        visible = top < self.grid_height() and top + height > 0
        return EventBox(event_id=event.id, top=top, height=height, visible=visible)

    def layout_day(self, events: Iterable[CalendarEvent]) -> List[EventBox]:
        return [self.layout_event(e) for e in events]

    def now_offset(self, now: datetime) -> Optional[float]:
        offset = self.offset_for(now)
        if offset < 0 or offset > self.grid_height():
            return None
        return offset
