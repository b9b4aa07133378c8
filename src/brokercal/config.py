from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml

from .civil import DEFAULT_TIMEZONE
from .layout import BASE_PX_PER_HOUR, MAX_ZOOM, MIN_ZOOM, WINDOW_END_HOUR, WINDOW_START_HOUR, ZOOM_STEP, DayGrid

@dataclass
class ZoomConfig:
    min: float
    max: float
    step: float

@dataclass
class DayGridConfig:
    start_hour: int
    end_hour: int
    base_px_per_hour: float
    zoom: ZoomConfig

    def grid(self, zoom: float) -> DayGrid:
        return DayGrid(
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            base_px_per_hour=self.base_px_per_hour,
            zoom=zoom,
            min_zoom=self.zoom.min,
            max_zoom=self.zoom.max,
            zoom_step=self.zoom.step,
        )

@dataclass
class DisplayConfig:
    width: int
    month_height: int
    output_path: str

@dataclass
class BackendConfig:
    enabled: bool
    url: str
    brokerage_id: str
    leads_table: str
    tasks_table: str
    timeout_seconds: int

@dataclass
class AppConfig:
    timezone: str
    default_view: str
    day_grid: DayGridConfig
    display: DisplayConfig
    backend: BackendConfig

def load_config(path: Optional[str]) -> AppConfig:
    data: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    day_grid = data.get("day_grid", {})
    zoom = day_grid.get("zoom", {})
    display = data.get("display", {})
    backend = data.get("backend", {})

    return AppConfig(
        timezone=str(data.get("timezone", DEFAULT_TIMEZONE)),
        default_view=str(data.get("default_view", "MONTH")).upper(),
        day_grid=DayGridConfig(
            start_hour=int(day_grid.get("start_hour", WINDOW_START_HOUR)),
            end_hour=int(day_grid.get("end_hour", WINDOW_END_HOUR)),
            base_px_per_hour=float(day_grid.get("base_px_per_hour", BASE_PX_PER_HOUR)),
            zoom=ZoomConfig(
                min=float(zoom.get("min", MIN_ZOOM)),
                max=float(zoom.get("max", MAX_ZOOM)),
                step=float(zoom.get("step", ZOOM_STEP)),
            ),
        ),
        display=DisplayConfig(
            width=int(display.get("width", 1200)),
            month_height=int(display.get("month_height", 1000)),
            output_path=str(display.get("output_path", "calendar.png")),
        ),
        backend=BackendConfig(
            enabled=bool(backend.get("enabled", False)),
            # The URL may also come from the environment, like the API key.
            url=str(backend.get("url") or os.environ.get("BROKERCAL_BACKEND_URL", "")),
            brokerage_id=str(backend.get("brokerage_id", "")),
            leads_table=str(backend.get("leads_table", "leads")),
            tasks_table=str(backend.get("tasks_table", "tasks")),
            timeout_seconds=int(backend.get("timeout_seconds", 10)),
        ),
    )
