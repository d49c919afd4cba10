from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .availability import (
    date_for_day_index,
    day_index_of,
    find_available_slots,
    open_minutes,
    week_start_for,
)
from .config import SchedulerSettings, get_settings
from .models import CalendarEvent, DeadlineWarning, Goal, coerce_goals
from .timecodec import next_full_hour

logger = logging.getLogger(__name__)


def workable_minutes_by_date(
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None,
    *,
    now: datetime,
    week_start: date,
    start_hour: int | None = None,
    end_hour: int | None = None,
    settings: SchedulerSettings | None = None,
) -> dict[date, int]:
    """Open minutes for each remaining day of the week (today from the next full hour)."""
    today = now.date()
    earliest = {}
    if 0 <= (today - week_start).days <= 6:
        earliest[day_index_of(today)] = next_full_hour(now.hour * 60 + now.minute)

    windows = find_available_slots(
        events,
        [],
        week_start=week_start,
        start_hour=start_hour,
        end_hour=end_hour,
        earliest_minutes_by_day=earliest,
        settings=settings,
    )
    workable: dict[date, int] = {}
    for day_index in range(7):
        day = date_for_day_index(week_start, day_index)
        if day < today:
            continue
        workable[day] = open_minutes(w for w in windows if w.day_index == day_index)
    return workable


def check_deadlines(
    goals: Iterable[Goal | Mapping[str, Any]] | None,
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None = None,
    *,
    now: datetime | None = None,
    week_start: date | None = None,
    start_hour: int | None = None,
    end_hour: int | None = None,
    settings: SchedulerSettings | None = None,
) -> list[DeadlineWarning]:
    """
    Flag sub-tasks whose remaining work exceeds the open time before their deadline.

    Only routine goals are checked. Workable time is counted over the planned
    week, from ``now`` through the end of the deadline day. Advisory only:
    nothing here blocks scheduling.

    Args:
        goals: Goal list
        events: Calendar events blocking time
        now: Current wall-clock time (defaults to datetime.now())
        week_start: Monday of the planned week (defaults to the week of ``now``)

    Returns:
        One warning per infeasible sub-task
    """
    now = now or datetime.now()
    settings = settings or get_settings()
    week_start = week_start_for(week_start or now)
    workable_by_date = workable_minutes_by_date(
        events,
        now=now,
        week_start=week_start,
        start_hour=start_hour,
        end_hour=end_hour,
        settings=settings,
    )

    warnings: list[DeadlineWarning] = []
    for goal in coerce_goals(goals):
        if not goal.is_schedulable:
            continue
        for subtask in goal.subtasks:
            remaining = subtask.remaining_minutes
            if subtask.deadline is None or remaining <= 0:
                continue
            workable = sum(
                minutes for day, minutes in workable_by_date.items() if day <= subtask.deadline
            )
            if remaining <= workable:
                continue
            warnings.append(
                DeadlineWarning(
                    goal_id=goal.id,
                    goal_title=goal.title,
                    subtask_id=subtask.id,
                    subtask_title=subtask.title,
                    message=(
                        f'"{subtask.title}" has {remaining / 60:.1f}h left '
                        f"but only {workable / 60:.1f}h before deadline."
                    ),
                    remaining_minutes=remaining,
                    workable_minutes=workable,
                )
            )

    if warnings:
        logger.info(f"{len(warnings)} sub-task(s) at risk of missing their deadline")
    return warnings
