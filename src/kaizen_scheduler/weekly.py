"""Week-level planning: concrete per-date assignments from goals and week plans."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .availability import (
    WEEK_ORDER,
    date_for_day_index,
    day_index_of,
    find_available_slots,
    hour_slots,
    week_position,
    week_start_for,
)
from .config import SchedulerSettings, get_settings
from .models import (
    AssignmentEntry,
    Assignments,
    CalendarEvent,
    Goal,
    GoalKind,
    coerce_events,
    coerce_goals,
    entry_id,
    normalize_assignments,
)
from .routines import generate_goal_schedule
from .timecodec import hour_key, next_full_hour, to_minutes, to_time_string

logger = logging.getLogger(__name__)

WEEKDAY_INDEX = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

# Goal id -> hours for one weekday
WeekPlan = Mapping[str, Iterable[Mapping[str, Any]]]


def weekday_index(name: Any) -> int | None:
    """Day index (0=Sun) for a weekday name or three-letter abbreviation."""
    if not isinstance(name, str):
        return None
    key = name.strip().lower()
    for weekday, index in WEEKDAY_INDEX.items():
        if key == weekday or (len(key) == 3 and weekday.startswith(key)):
            return index
    return None


def _requested_hours(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(hours) or hours <= 0:
        return 0
    return math.ceil(hours)


def materialize_week_plan(
    week_plan: WeekPlan | None,
    goals: Iterable[Goal | Mapping[str, Any]] | None,
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None = None,
    *,
    week_start: date | datetime,
    start_hour: int | None = None,
    end_hour: int | None = None,
    settings: SchedulerSettings | None = None,
) -> dict[str, Assignments]:
    """
    Expand an abstract week plan into per-date assignment maps.

    Each weekday's requested goal hours are laid hour by hour into that
    date's open windows, in the order the plan lists them. Hours that no
    longer fit are dropped.

    Args:
        week_plan: ``{"Monday": [{"goalId": ..., "hours": 2}, ...], ...}``
        goals: Goal list; entries for unknown goals are skipped
        events: Calendar events blocking time
        week_start: Monday of the target week

    Returns:
        ``{dateISO: assignments}`` for every weekday present in the plan
    """
    settings = settings or get_settings()
    week_start = week_start_for(week_start)
    goal_map = {
        goal.id: goal for goal in coerce_goals(goals) if goal.kind is not GoalKind.VITALITY
    }
    event_list = coerce_events(events)

    requests_by_day: dict[int, list[Mapping[str, Any]]] = {}
    for name, entries in (week_plan or {}).items():
        day_index = weekday_index(name)
        if day_index is None:
            logger.warning(f"Skipping unknown weekday in week plan: {name!r}")
            continue
        if not isinstance(entries, (list, tuple)):
            continue
        requests_by_day.setdefault(day_index, []).extend(
            entry for entry in entries if isinstance(entry, Mapping)
        )

    result: dict[str, Assignments] = {}
    for day_index in sorted(requests_by_day, key=week_position):
        day = date_for_day_index(week_start, day_index)
        windows = find_available_slots(
            event_list,
            [],
            week_start=week_start,
            start_hour=start_hour,
            end_hour=end_hour,
            day_indices=[day_index],
            settings=settings,
        )
        slots = hour_slots(windows)
        assignments: Assignments = {}
        slot_index = 0
        dropped = 0
        for request in requests_by_day[day_index]:
            goal_id = request.get("goalId", request.get("goal_id"))
            goal = goal_map.get(str(goal_id)) if goal_id is not None else None
            if goal is None:
                logger.warning(f"Skipping week plan entry for unknown goal {goal_id!r}")
                continue
            hours = _requested_hours(request.get("hours"))
            while hours and slot_index < len(slots):
                key = hour_key(slots[slot_index])
                slot_index += 1
                hours -= 1
                assignments[key] = AssignmentEntry(
                    id=entry_id(goal.id, day.isoformat(), key),
                    goal_id=goal.id,
                    title=goal.title,
                    spoon_cost=goal.spoon_cost,
                )
            dropped += hours
        if dropped:
            logger.warning(f"{dropped} requested hour(s) did not fit on {day.isoformat()}")
        result[day.isoformat()] = assignments
    return result


def _existing_blocks(plans: Mapping[date, Assignments]) -> list[dict[str, Any]]:
    blocks = []
    for day, assignments in plans.items():
        for key in assignments:
            start = to_minutes(key)
            blocks.append(
                {"dayIndex": day_index_of(day), "start": key, "end": to_time_string(start + 60)}
            )
    return blocks


def auto_fill_week(
    goals: Iterable[Goal | Mapping[str, Any]] | None,
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None = None,
    existing: Mapping[str, Mapping[str, Any]] | None = None,
    *,
    now: datetime | None = None,
    start_hour: int | None = None,
    end_hour: int | None = None,
    storm_buffer_minutes: int = 0,
    settings: SchedulerSettings | None = None,
) -> dict[str, Assignments]:
    """
    Fill the rest of the current week with routine goal blocks.

    Goals are placed one after another; availability is recomputed after each
    goal so later goals only use hours that are still free. Existing entries
    are kept and never overwritten.

    Args:
        goals: Goal list; only routine goals are placed
        events: Calendar events blocking time
        existing: Already planned ``{dateISO: assignments}``
        now: Current wall-clock time (defaults to datetime.now())

    Returns:
        ``{dateISO: assignments}`` for today through Sunday
    """
    now = now or datetime.now()
    settings = settings or get_settings()
    today = now.date()
    week_start = week_start_for(today)
    all_goals = coerce_goals(goals)
    goal_list = [goal for goal in all_goals if goal.is_schedulable]
    event_list = coerce_events(events)

    remaining_days = [
        day_index
        for day_index in WEEK_ORDER
        if date_for_day_index(week_start, day_index) >= today
    ]
    plans: dict[date, Assignments] = {}
    for day_index in remaining_days:
        day = date_for_day_index(week_start, day_index)
        plans[day] = normalize_assignments((existing or {}).get(day.isoformat()), all_goals)

    today_index = day_index_of(today)
    earliest = {today_index: next_full_hour(now.hour * 60 + now.minute)}

    placed = 0
    for goal in goal_list:
        windows = find_available_slots(
            event_list,
            _existing_blocks(plans),
            week_start=week_start,
            start_hour=start_hour,
            end_hour=end_hour,
            storm_buffer_minutes=storm_buffer_minutes,
            day_indices=remaining_days,
            earliest_minutes_by_day=earliest,
            settings=settings,
        )
        # Whole hours still open per day; blocks only land on these
        open_hours = {
            day_index: set(hour_slots(w for w in windows if w.day_index == day_index))
            for day_index in remaining_days
        }
        for block in generate_goal_schedule(goal, windows, settings=settings):
            if block.day_index not in remaining_days:
                continue
            day = date_for_day_index(week_start, block.day_index)
            first_hour = -(-block.start_minutes // 60) * 60
            for minute in range(first_hour, block.end_minutes, 60):
                key = hour_key(minute)
                if minute not in open_hours[block.day_index] or key in plans[day]:
                    continue
                plans[day][key] = AssignmentEntry(
                    id=entry_id(goal.id, day.isoformat(), key),
                    goal_id=goal.id,
                    title=goal.title,
                    spoon_cost=goal.spoon_cost,
                    subtask_id=block.subtask_id,
                    subtask_title=block.subtask_title,
                )
                placed += 1

    logger.info(f"Auto-filled {placed} hour(s) for week of {week_start.isoformat()}")
    return {day.isoformat(): dict(sorted(assignments.items())) for day, assignments in plans.items()}
