"""Open-window computation from calendar events and already placed blocks.

Day index follows the calendar collaborators: 0 = Sunday ... 6 = Saturday.
Weeks are anchored on Monday, so Monday is the first day in week order and
Sunday the last.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from .config import SchedulerSettings, get_settings
from .models import CalendarEvent, EventType, coerce_events
from .timecodec import MINUTES_PER_DAY, to_minutes, to_time_string

logger = logging.getLogger(__name__)

# Monday first, Sunday last
WEEK_ORDER = (1, 2, 3, 4, 5, 6, 0)


@dataclass(frozen=True)
class Interval:
    start: int
    end: int


@dataclass(frozen=True)
class NormalizedEvent:
    day_index: int
    start_minutes: int
    end_minutes: int
    type: EventType


@dataclass(frozen=True)
class TimeWindow:
    """Contiguous open span on one day, wall-clock "HH:MM" bounds."""

    day_index: int
    start: str
    end: str

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return max(0, self.end_minutes - self.start_minutes)

    def to_dict(self) -> dict[str, Any]:
        return {"dayIndex": self.day_index, "start": self.start, "end": self.end}


def week_position(day_index: int) -> int:
    """Offset of a day index from the Monday anchor (Monday 0 ... Sunday 6)."""
    return (day_index + 6) % 7


def day_index_of(day: date) -> int:
    return (day.weekday() + 1) % 7


def week_start_for(day: date | datetime) -> date:
    """Monday of the week containing the given day."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def date_for_day_index(week_start: date | datetime, day_index: int) -> date:
    anchor = week_start.date() if isinstance(week_start, datetime) else week_start
    return anchor + timedelta(days=week_position(day_index))


def _anchor_midnight(week_start: date | datetime) -> datetime:
    anchor = week_start.date() if isinstance(week_start, datetime) else week_start
    return datetime.combine(anchor, time.min)


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    # Local wall clock only
    return parsed.replace(tzinfo=None)


def normalize_event(
    event: CalendarEvent, week_start: date | datetime
) -> NormalizedEvent | None:
    """
    Map an event onto ``(day_index, start_minutes, end_minutes, type)``.

    Returns None when the event is malformed or an absolute event falls
    outside the seven days starting at ``week_start``.
    """
    if event.day_index is not None:
        if not isinstance(event.start, str) or not isinstance(event.end, str):
            return None
        day_index = event.day_index
        start_minutes = to_minutes(event.start)
        end_minutes = to_minutes(event.end)
    else:
        start = _parse_datetime(event.start)
        end = _parse_datetime(event.end)
        if start is None or end is None:
            return None
        anchor = _anchor_midnight(week_start)
        day_offset = (start - anchor) // timedelta(days=1)
        if day_offset < 0 or day_offset > 6:
            return None
        day_index = (day_index_of(anchor.date()) + day_offset) % 7
        start_minutes = start.hour * 60 + start.minute
        if end.date() > start.date():
            end_minutes = MINUTES_PER_DAY
        else:
            end_minutes = end.hour * 60 + end.minute

    if end_minutes <= start_minutes:
        return None
    return NormalizedEvent(day_index, start_minutes, end_minutes, event.type)


def normalize_events(
    events: Iterable[CalendarEvent], week_start: date | datetime
) -> list[NormalizedEvent]:
    normalized = []
    for event in events:
        result = normalize_event(event, week_start)
        if result is not None:
            normalized.append(result)
    return normalized


def merge_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """Merge overlapping or touching intervals into a sorted, disjoint list."""
    ordered = sorted(intervals, key=lambda interval: interval.start)
    merged: list[Interval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def _plan_interval(plan: Any) -> tuple[int, Interval] | None:
    if isinstance(plan, Mapping):
        day_index = plan.get("dayIndex", plan.get("day_index"))
        start, end = plan.get("start"), plan.get("end")
    else:
        day_index = getattr(plan, "day_index", None)
        start, end = getattr(plan, "start", None), getattr(plan, "end", None)
    if not isinstance(day_index, int) or isinstance(day_index, bool):
        return None
    start_minutes, end_minutes = to_minutes(start), to_minutes(end)
    if start_minutes >= end_minutes:
        return None
    return day_index, Interval(start_minutes, end_minutes)


def open_windows_for_day(
    day_index: int, blocked: Iterable[Interval], day_start: int, day_end: int
) -> list[TimeWindow]:
    """Complement of the blocked intervals within ``[day_start, day_end]``."""
    windows: list[TimeWindow] = []
    cursor = day_start
    for busy in merge_intervals(blocked):
        if busy.end <= cursor:
            continue
        if busy.start >= day_end:
            break
        if busy.start > cursor:
            windows.append(TimeWindow(day_index, to_time_string(cursor), to_time_string(busy.start)))
        cursor = max(cursor, busy.end)
    if cursor < day_end:
        windows.append(TimeWindow(day_index, to_time_string(cursor), to_time_string(day_end)))
    return windows


def find_available_slots(
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None,
    existing_plans: Iterable[Any] = (),
    *,
    week_start: date | datetime,
    start_hour: int | None = None,
    end_hour: int | None = None,
    storm_buffer_minutes: int = 0,
    day_indices: Sequence[int] | None = None,
    earliest_minutes_by_day: Mapping[int, int] | None = None,
    settings: SchedulerSettings | None = None,
) -> list[TimeWindow]:
    """
    Find open windows for the week.

    Args:
        events: Calendar events, absolute or weekly form (mixed is fine)
        existing_plans: Already placed blocks with day_index/start/end
        week_start: Monday of the target week
        start_hour: Working window start, defaults to settings
        end_hour: Working window end, defaults to settings
        storm_buffer_minutes: Extra minutes blocked on both sides of storm events
        day_indices: Restrict the result to these days
        earliest_minutes_by_day: Per-day floor for the window start

    Returns:
        Open windows in week order (Monday first), then by start time
    """
    settings = settings or get_settings()
    start_hour = settings.day_start_hour if start_hour is None else start_hour
    end_hour = settings.day_end_hour if end_hour is None else end_hour
    day_start, day_end = start_hour * 60, end_hour * 60
    buffer = max(0, storm_buffer_minutes)
    earliest = earliest_minutes_by_day or {}

    blocked: dict[int, list[Interval]] = {day: [] for day in range(7)}
    for norm in normalize_events(coerce_events(events), week_start):
        pad = buffer if norm.type is EventType.STORM else 0
        blocked[norm.day_index].append(
            Interval(max(0, norm.start_minutes - pad), min(MINUTES_PER_DAY, norm.end_minutes + pad))
        )
    for plan in existing_plans or ():
        located = _plan_interval(plan)
        if located is not None and located[0] in blocked:
            blocked[located[0]].append(located[1])

    wanted = set(range(7) if day_indices is None else day_indices)
    windows: list[TimeWindow] = []
    for day_index in WEEK_ORDER:
        if day_index not in wanted:
            continue
        floor = max(day_start, earliest.get(day_index, day_start))
        windows.extend(open_windows_for_day(day_index, blocked[day_index], floor, day_end))

    logger.debug(f"Found {len(windows)} open windows for week of {_anchor_midnight(week_start).date()}")
    return windows


def open_minutes(windows: Iterable[TimeWindow]) -> int:
    return sum(window.duration_minutes for window in windows)


def hour_slots(windows: Iterable[TimeWindow]) -> list[int]:
    """Start minutes of every whole hour lying entirely inside a window."""
    slots: list[int] = []
    for window in windows:
        cursor = -(-window.start_minutes // 60) * 60
        while cursor + 60 <= window.end_minutes:
            slots.append(cursor)
            cursor += 60
    return sorted(slots)
