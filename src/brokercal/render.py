from __future__ import annotations
from datetime import date, datetime
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo
import hashlib
import json

from PIL import Image, ImageDraw, ImageFont

from .grid import DAY_NAMES, days_in_month, month_start, month_title, month_weeks, week_dates
from .layout import DayGrid, effective_end
from .models import BIRTHDAY, HOME_ANNIVERSARY, TASK, WEDDING_ANNIVERSARY, CalendarEvent
from .projection import events_in_range, events_on_day

FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"
MONTH_CELL_EVENT_LIMIT = 4

# (fill, outline, text) per category
CATEGORY_COLORS: Dict[str, tuple] = {
    TASK: ((236, 253, 245), (209, 250, 229), (4, 120, 87)),
    BIRTHDAY: ((255, 241, 242), (255, 228, 230), (190, 18, 60)),
    WEDDING_ANNIVERSARY: ((250, 245, 255), (243, 232, 255), (126, 34, 206)),
    HOME_ANNIVERSARY: ((240, 253, 250), (204, 251, 241), (15, 118, 110)),
}
_FALLBACK_COLORS = ((241, 245, 249), (226, 232, 240), (51, 65, 85))
ACCENT = (79, 70, 229)
GRID_LINE = (226, 232, 240)
MUTED = (148, 163, 184)
NOW_LINE = (225, 29, 72)


def _load_font(size: int) -> ImageFont.FreeTypeFont:
    # DejaVu ships with most Linux installs; Pillow's bundled font otherwise.
    try:
        return ImageFont.truetype(FONT_PATH, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _fmt_time(dt: datetime) -> str:
    return dt.strftime("%-I:%M %p").lower()


def _fmt_hour(hour: int) -> str:
    suffix = "am" if hour < 12 else "pm"
    return f"{(hour % 12) or 12} {suffix}"


def _colors(category: str) -> tuple:
    return CATEGORY_COLORS.get(category, _FALLBACK_COLORS)


def _truncate(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.FreeTypeFont, max_width: float) -> str:
    if draw.textlength(text, font=font) <= max_width:
        return text
    while text and draw.textlength(text + "…", font=font) > max_width:
        text = text[:-1]
    return (text + "…") if text else ""


def _wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.FreeTypeFont,
    max_width: float,
    max_lines: Optional[int] = 2,
) -> List[str]:
    words = text.split()
    lines: List[str] = []
    cur = ""
    for w in words:
        test = (cur + " " + w).strip()
        if draw.textlength(test, font=font) <= max_width:
            cur = test
        else:
            if cur:
                lines.append(cur)
            cur = w
    if cur:
        lines.append(cur)
    return lines if max_lines is None else lines[:max_lines]


def _draw_hour_rail(
    d: ImageDraw.ImageDraw,
    grid: DayGrid,
    left: float,
    right: float,
    grid_top: float,
    label_x: Optional[float],
    font: ImageFont.FreeTypeFont,
) -> None:
    for i, hour in enumerate(grid.hours):
        y = grid_top + i * grid.px_per_hour
        d.line((left, y, right, y), fill=GRID_LINE, width=1)
        if label_x is not None:
            d.text((label_x, y + 4), _fmt_hour(hour), fill=MUTED, font=font)
    bottom = grid_top + grid.grid_height()
    d.line((left, bottom, right, bottom), fill=GRID_LINE, width=1)


def _draw_timed_events(
    d: ImageDraw.ImageDraw,
    grid: DayGrid,
    events: List[CalendarEvent],
    x0: float,
    x1: float,
    grid_top: float,
    title_font: ImageFont.FreeTypeFont,
    time_font: ImageFont.FreeTypeFont,
) -> None:
    grid_bottom = grid_top + grid.grid_height()
    for e in events:
        box = grid.layout_event(e)
        if not box.visible:
            continue
        y0 = max(grid_top, grid_top + box.top)
        y1 = min(grid_bottom, grid_top + box.top + box.height)
        fill, outline, text = _colors(e.category)
        d.rectangle((x0, y0, x1, y1), fill=fill, outline=outline, width=2)

        inner_w = x1 - x0 - 16
        line_h = title_font.size + 4
        max_lines = max(1, int((y1 - y0 - 8) // line_h) - 1)
        lines = _wrap_text(d, e.title, title_font, inner_w, max_lines=max_lines) or [""]
        ty = y0 + 6
        for line in lines:
            d.text((x0 + 8, ty), line, fill=text, font=title_font)
            ty += line_h
        time_str = f"{_fmt_time(e.start)}–{_fmt_time(effective_end(e.start, e.end))}"
        if ty + time_font.size <= y1:
            d.text((x0 + 8, ty), _truncate(d, time_str, time_font, inner_w), fill=text, font=time_font)


def render_day(
    canvas_w: int,
    now: datetime,
    day: date,
    events: List[CalendarEvent],
    tz: ZoneInfo,
    grid: DayGrid,
) -> Image.Image:
    font_header = _load_font(40)
    font_hour = _load_font(18)
    font_title = _load_font(22)
    font_time = _load_font(16)

    padding = 30
    header_h = font_header.size + 30
    grid_top = padding + header_h
    canvas_h = int(grid_top + grid.grid_height() + padding)

    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)

    d.text((padding, padding), day.strftime("%B %-d, %Y"), fill="black", font=font_header)

    rail_w = 80
    _draw_hour_rail(d, grid, padding + rail_w, canvas_w - padding, grid_top, padding, font_hour)

    day_events = events_on_day(events, day, tz)
    _draw_timed_events(
        d, grid, day_events, padding + rail_w + 8, canvas_w - padding - 8, grid_top, font_title, font_time
    )

    local_now = now.astimezone(tz)
    if local_now.date() == day:
        offset = grid.now_offset(local_now)
        if offset is not None:
            y = grid_top + offset
            d.line((padding + rail_w, y, canvas_w - padding, y), fill=NOW_LINE, width=3)
            d.ellipse((padding + rail_w - 6, y - 6, padding + rail_w + 6, y + 6), fill=NOW_LINE)

    return img


def render_week(
    canvas_w: int,
    now: datetime,
    day: date,
    events: List[CalendarEvent],
    tz: ZoneInfo,
    grid: DayGrid,
) -> Image.Image:
    font_header = _load_font(28)
    font_hour = _load_font(16)
    font_title = _load_font(16)
    font_time = _load_font(13)

    padding = 30
    rail_w = 70
    header_h = font_header.size * 2 + 24
    grid_top = padding + header_h
    canvas_h = int(grid_top + grid.grid_height() + padding)
    days = week_dates(day)
    col_w = (canvas_w - 2 * padding - rail_w) / 7
    today = now.astimezone(tz).date()

    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)
    _draw_hour_rail(d, grid, padding + rail_w, canvas_w - padding, grid_top, padding, font_hour)

    by_day = events_in_range(events, days[0], days[-1], tz)
    for idx, current in enumerate(days):
        x0 = padding + rail_w + idx * col_w
        color = ACCENT if current == today else "black"
        d.text((x0 + 8, padding), DAY_NAMES[idx], fill=MUTED, font=font_hour)
        d.text((x0 + 8, padding + font_header.size), str(current.day), fill=color, font=font_header)
        d.line((x0, grid_top, x0, grid_top + grid.grid_height()), fill=GRID_LINE, width=1)
        _draw_timed_events(d, grid, by_day[current], x0 + 3, x0 + col_w - 3, grid_top, font_title, font_time)

    return img


def render_month(
    canvas_w: int,
    canvas_h: int,
    now: datetime,
    year: int,
    month_index: int,
    events: List[CalendarEvent],
    tz: ZoneInfo,
) -> Image.Image:
    img = Image.new("RGB", (canvas_w, canvas_h), "white")
    d = ImageDraw.Draw(img)

    font_header = _load_font(44)
    font_day_name = _load_font(16)
    font_day = _load_font(20)
    font_event = _load_font(14)

    padding = 30
    y = padding
    d.text((padding, y), month_title(year, month_index), fill="black", font=font_header)
    y += font_header.size + 20

    col_w = (canvas_w - 2 * padding) / 7
    for idx, name in enumerate(DAY_NAMES):
        name_w = d.textlength(name, font=font_day_name)
        d.text((padding + idx * col_w + (col_w - name_w) / 2, y), name, fill=MUTED, font=font_day_name)
    y += font_day_name.size + 14

    weeks = month_weeks(year, month_index)
    row_h = (canvas_h - padding - y) / len(weeks)
    first = month_start(year, month_index)
    last = first.replace(day=days_in_month(year, month_index))
    by_day = events_in_range(events, first, last, tz)
    today = now.astimezone(tz).date()
    line_h = font_event.size + 8

    for r, week in enumerate(weeks):
        for c, cell in enumerate(week):
            x0 = padding + c * col_w
            y0 = y + r * row_h
            d.rectangle((x0, y0, x0 + col_w, y0 + row_h), outline=GRID_LINE, width=1)
            if cell is None:
                continue
            current = first.replace(day=cell)
            if current == today:
                d.rectangle((x0 + 4, y0 + 4, x0 + 36, y0 + 32), fill=ACCENT)
                d.text((x0 + 8, y0 + 6), str(cell), fill="white", font=font_day)
            else:
                d.text((x0 + 8, y0 + 6), str(cell), fill=MUTED, font=font_day)

            day_events = by_day[current]
            ey = y0 + 38
            for e in day_events[:MONTH_CELL_EVENT_LIMIT]:
                if ey + line_h > y0 + row_h:
                    break
                fill, outline, text = _colors(e.category)
                d.rectangle((x0 + 4, ey, x0 + col_w - 4, ey + line_h - 2), fill=fill, outline=outline)
                d.text((x0 + 8, ey + 3), _truncate(d, e.title, font_event, col_w - 16), fill=text, font=font_event)
                ey += line_h
            extra = len(day_events) - MONTH_CELL_EVENT_LIMIT
            if extra > 0 and ey + font_event.size <= y0 + row_h:
                d.text((x0 + 8, ey), f"+ {extra} More", fill=ACCENT, font=font_event)

    return img


def render_signature(
    tz: ZoneInfo,
    view_mode: str,
    anchor: date,
    zoom: float,
    events: List[CalendarEvent],
    today: date,
    now_offset: Optional[float] = None,
) -> str:
    # Only include fields that affect rendering.
    def _event_payload(e: CalendarEvent) -> dict:
        return {
            "id": e.id,
            "category": e.category,
            "title": e.title,
            "start": e.start.astimezone(tz).isoformat(),
            "end": effective_end(e.start, e.end).astimezone(tz).isoformat(),
        }

    payload = {
        "view_mode": view_mode,
        "anchor": anchor.isoformat(),
        "zoom": zoom,
        "today": today.isoformat(),
        "now_offset": now_offset,
        "events": [_event_payload(e) for e in events],
    }
    b = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(b).hexdigest()
