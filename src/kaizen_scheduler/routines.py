"""
Block generation for routine goals.

Solid goals are emitted verbatim on their configured weekdays. Liquid goals
are packed into open windows as 60 or 120 minute blocks, earliest deadline
first when sub-tasks carry deadlines, otherwise toward the weekly target.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from .availability import TimeWindow, week_position
from .config import SchedulerSettings, get_settings
from .models import Goal, Preference, ScheduleMode, coerce_goal
from .timecodec import to_minutes, to_time_string

logger = logging.getLogger(__name__)

SHORT_BLOCK_MINUTES = 60
LONG_BLOCK_MINUTES = 120


@dataclass(frozen=True)
class ScheduledBlock:
    day_index: int
    start: str
    end: str
    duration_minutes: int
    goal_id: str
    title: str
    subtask_id: str | None = None
    subtask_title: str | None = None

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "dayIndex": self.day_index,
            "start": self.start,
            "end": self.end,
            "durationMinutes": self.duration_minutes,
            "goalId": self.goal_id,
            "title": self.title,
        }
        if self.subtask_id is not None:
            data["subtaskId"] = self.subtask_id
            data["subtaskTitle"] = self.subtask_title
        return data


@dataclass
class _Demand:
    subtask_id: str | None
    subtask_title: str
    remaining_minutes: int
    deadline: date


def _block_minutes(window_left: int, need_left: int) -> int:
    # Never shorter than an hour; small remainders round up
    if window_left >= LONG_BLOCK_MINUTES and need_left >= LONG_BLOCK_MINUTES:
        return LONG_BLOCK_MINUTES
    return SHORT_BLOCK_MINUTES


def _ordered_windows(windows: Sequence[TimeWindow], preference: Preference) -> list[TimeWindow]:
    if preference is Preference.AFTERNOON:
        return sorted(windows, key=lambda w: (week_position(w.day_index), -w.start_minutes))
    return sorted(windows, key=lambda w: (week_position(w.day_index), w.start_minutes))


def _make_block(
    goal: Goal,
    window: TimeWindow,
    cursor: int,
    duration: int,
    demand: _Demand | None = None,
) -> ScheduledBlock:
    return ScheduledBlock(
        day_index=window.day_index,
        start=to_time_string(cursor),
        end=to_time_string(cursor + duration),
        duration_minutes=duration,
        goal_id=goal.id,
        title=goal.title,
        subtask_id=demand.subtask_id if demand else None,
        subtask_title=demand.subtask_title if demand else None,
    )


def _deadline_demands(goal: Goal) -> list[_Demand]:
    demands = [
        _Demand(st.id, st.title, st.remaining_minutes, st.deadline)
        for st in goal.subtasks
        if st.deadline is not None and st.remaining_minutes > 0
    ]
    # Stable sort keeps input order for equal deadlines
    return sorted(demands, key=lambda d: d.deadline)


def generate_liquid_schedule(
    goal: Goal | Mapping[str, Any],
    available_slots: Sequence[TimeWindow],
    *,
    settings: SchedulerSettings | None = None,
) -> list[ScheduledBlock]:
    """
    Fill open windows with 1h/2h blocks for a flexible goal.

    Args:
        goal: Liquid routine goal
        available_slots: Open windows, e.g. from find_available_slots

    Returns:
        Blocks in placement order. Demand that does not fit is dropped.
    """
    goal = coerce_goal(goal)
    if goal is None or not available_slots:
        return []
    settings = settings or get_settings()
    windows = _ordered_windows(available_slots, goal.preference)
    blocks: list[ScheduledBlock] = []

    demands = _deadline_demands(goal)
    if demands:
        index = 0
        for window in windows:
            if index >= len(demands):
                break
            cursor = window.start_minutes
            while index < len(demands) and cursor + SHORT_BLOCK_MINUTES <= window.end_minutes:
                demand = demands[index]
                duration = _block_minutes(window.end_minutes - cursor, demand.remaining_minutes)
                blocks.append(_make_block(goal, window, cursor, duration, demand))
                demand.remaining_minutes -= duration
                cursor += duration
                if demand.remaining_minutes <= 0:
                    index += 1
        unplaced = sum(d.remaining_minutes for d in demands if d.remaining_minutes > 0)
        if unplaced:
            logger.debug(f"Goal {goal.id}: {unplaced} deadline minutes did not fit")
        return blocks

    target_minutes = goal.target_minutes(settings.default_target_minutes)
    if target_minutes <= 0:
        return []
    filled = 0
    for window in windows:
        if filled >= target_minutes:
            break
        cursor = window.start_minutes
        while cursor + SHORT_BLOCK_MINUTES <= window.end_minutes and filled < target_minutes:
            duration = _block_minutes(window.end_minutes - cursor, target_minutes - filled)
            blocks.append(_make_block(goal, window, cursor, duration))
            filled += duration
            cursor += duration
    if filled < target_minutes:
        logger.debug(f"Goal {goal.id}: placed {filled} of {target_minutes} target minutes")
    return blocks


def generate_solid_schedule(goal: Goal | Mapping[str, Any]) -> list[ScheduledBlock]:
    """One fixed block per configured weekday, without conflict checking."""
    goal = coerce_goal(goal)
    if goal is None or goal.schedule_mode is not ScheduleMode.SOLID or not goal.solid_days:
        return []
    start_minutes = to_minutes(goal.solid_start)
    end_minutes = to_minutes(goal.solid_end)
    duration = end_minutes - start_minutes
    if duration <= 0:
        logger.warning(f"Goal {goal.id}: solid window {goal.solid_start}-{goal.solid_end} is empty")
        return []
    return [
        ScheduledBlock(
            day_index=day_index,
            start=to_time_string(start_minutes),
            end=to_time_string(end_minutes),
            duration_minutes=duration,
            goal_id=goal.id,
            title=goal.title,
        )
        for day_index in dict.fromkeys(goal.solid_days)
    ]


def generate_goal_schedule(
    goal: Goal,
    available_slots: Sequence[TimeWindow],
    *,
    settings: SchedulerSettings | None = None,
) -> list[ScheduledBlock]:
    """Dispatch on the goal's schedule mode."""
    if goal.schedule_mode is ScheduleMode.SOLID:
        return generate_solid_schedule(goal)
    return generate_liquid_schedule(goal, available_slots, settings=settings)
