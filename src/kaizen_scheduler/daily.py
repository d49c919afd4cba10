"""
Daily plan composition under a spoon-style energy budget.

The composer turns routine goals into one day's hour-keyed assignment map:
it resolves the budget (less any storm penalty), builds hour candidates from
the solid and liquid schedulers, balances work against nourishment for the
day's energy level and walks the selection onto the open hour slots,
inserting a recovery slot after every costly item.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from .availability import (
    TimeWindow,
    day_index_of,
    find_available_slots,
    hour_slots,
    week_start_for,
)
from .config import SchedulerSettings, get_settings
from .models import (
    AssignmentEntry,
    Assignments,
    CalendarEvent,
    Goal,
    ScheduleCategory,
    coerce_events,
    coerce_goal,
    coerce_goals,
    entry_id,
    normalize_assignments,
)
from .routines import ScheduledBlock, generate_goal_schedule
from .storm import calculate_storm_impact
from .timecodec import hour_key, next_full_hour

logger = logging.getLogger(__name__)

MIN_SPOONS = 1
MAX_SPOONS = 12


class EnergyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class EnergyBudget:
    """Spoon budget for a day plus the energy modifier it implies."""

    spoons: int
    modifier: int = 0

    @property
    def level(self) -> EnergyLevel:
        if self.modifier <= -2:
            return EnergyLevel.LOW
        if self.modifier >= 1:
            return EnergyLevel.HIGH
        return EnergyLevel.NORMAL

    @classmethod
    def from_spoons(cls, spoons: int, settings: SchedulerSettings | None = None) -> "EnergyBudget":
        settings = settings or get_settings()
        spoons = min(MAX_SPOONS, max(MIN_SPOONS, int(spoons)))
        if spoons <= settings.low_energy_spoon_limit:
            modifier = -2
        elif spoons >= settings.high_energy_spoon_limit:
            modifier = 1
        else:
            modifier = 0
        return cls(spoons=spoons, modifier=modifier)

    @classmethod
    def from_modifier(
        cls, modifier: int, settings: SchedulerSettings | None = None
    ) -> "EnergyBudget":
        settings = settings or get_settings()
        modifier = int(modifier)
        spoons = min(MAX_SPOONS, max(MIN_SPOONS, settings.default_spoon_budget + modifier))
        return cls(spoons=spoons, modifier=modifier)


def resolve_energy_budget(
    value: int | EnergyBudget | None, settings: SchedulerSettings | None = None
) -> EnergyBudget:
    """
    Interpret an energy input.

    An integer in 1..12 is a spoon count; any other integer is the legacy
    signed modifier (-2 low, 0 normal, +1 high) applied to the default budget.
    """
    if isinstance(value, EnergyBudget):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        value = 0
    value = int(value)
    if MIN_SPOONS <= value <= MAX_SPOONS:
        return EnergyBudget.from_spoons(value, settings)
    return EnergyBudget.from_modifier(value, settings)


def total_spoon_cost(assignments: Mapping[str, AssignmentEntry]) -> int:
    return sum(entry.spoon_cost for entry in assignments.values() if not entry.is_recovery)


@dataclass(frozen=True)
class _Candidate:
    minute: int
    goal: Goal
    block: ScheduledBlock

    @property
    def cost(self) -> int:
        return self.goal.spoon_cost

    @property
    def is_work(self) -> bool:
        return self.goal.schedule_category is ScheduleCategory.WORK


def _inside(windows: Sequence[TimeWindow], minute: int) -> bool:
    return any(w.start_minutes <= minute and minute + 60 <= w.end_minutes for w in windows)


def _build_candidates(
    goals: Sequence[Goal],
    windows: Sequence[TimeWindow],
    day_index: int,
    settings: SchedulerSettings,
) -> tuple[list[_Candidate], list[_Candidate]]:
    work: list[_Candidate] = []
    nourishment: list[_Candidate] = []
    for goal in goals:
        if not goal.is_schedulable:
            continue
        blocks = [
            block
            for block in generate_goal_schedule(goal, windows, settings=settings)
            if block.day_index == day_index
        ]
        target = work if goal.schedule_category is ScheduleCategory.WORK else nourishment
        for block in blocks:
            for minute in range(block.start_minutes, block.end_minutes, 60):
                if _inside(windows, minute):
                    target.append(_Candidate(minute, goal, block))
    # Stable sorts keep goal order for candidates sharing an hour
    work.sort(key=lambda c: c.minute)
    nourishment.sort(key=lambda c: c.minute)
    return work, nourishment


def _select_low_energy(
    work: list[_Candidate], nourishment: list[_Candidate], budget: int
) -> list[_Candidate]:
    # Reserve one spoon for a single nourishment item
    reserve = 1 if nourishment else 0
    selected: list[_Candidate] = []
    spent = 0
    for candidate in work:
        if spent + candidate.cost <= budget - reserve:
            selected.append(candidate)
            spent += candidate.cost
    for candidate in nourishment:
        if spent + candidate.cost <= budget:
            selected.append(candidate)
            break
    return sorted(selected, key=lambda c: c.minute)


def _select_high_energy(
    work: list[_Candidate], nourishment: list[_Candidate], budget: int, max_run: int
) -> list[_Candidate]:
    selected: list[_Candidate] = []
    spent = 0
    work_index = nourish_index = 0
    work_in_row = 0
    while (work_index < len(work) or nourish_index < len(nourishment)) and spent < budget:
        if work_in_row >= max_run and nourish_index < len(nourishment):
            fitting = next(
                (
                    index
                    for index in range(nourish_index, len(nourishment))
                    if spent + nourishment[index].cost <= budget
                ),
                None,
            )
            if fitting is None:
                # Break is due but unaffordable; the work run ends here
                break
            candidate = nourishment[fitting]
            nourish_index = fitting + 1
        elif work_index < len(work):
            candidate = work[work_index]
            work_index += 1
        else:
            candidate = nourishment[nourish_index]
            nourish_index += 1
        if spent + candidate.cost > budget:
            continue
        selected.append(candidate)
        spent += candidate.cost
        work_in_row = work_in_row + 1 if candidate.is_work else 0
    return selected


def _select_normal(
    work: list[_Candidate], nourishment: list[_Candidate], budget: int
) -> list[_Candidate]:
    selected: list[_Candidate] = []
    spent = 0
    for candidate in sorted(work + nourishment, key=lambda c: c.minute):
        if spent + candidate.cost <= budget:
            selected.append(candidate)
            spent += candidate.cost
    return selected


def _place(
    selected: Sequence[_Candidate],
    slots: Sequence[int],
    day: date,
    recovery_threshold: int,
) -> Assignments:
    assignments: Assignments = {}
    slot_index = 0
    for candidate in selected:
        if slot_index >= len(slots):
            break
        key = hour_key(slots[slot_index])
        slot_index += 1
        assignments[key] = AssignmentEntry(
            id=entry_id(candidate.goal.id, day.isoformat(), key),
            goal_id=candidate.goal.id,
            title=candidate.goal.title,
            spoon_cost=candidate.cost,
            subtask_id=candidate.block.subtask_id,
            subtask_title=candidate.block.subtask_title,
        )
        if candidate.cost >= recovery_threshold and slot_index < len(slots):
            recovery_key = hour_key(slots[slot_index])
            slot_index += 1
            assignments[recovery_key] = AssignmentEntry.recovery(
                entry_id("recovery", day.isoformat(), recovery_key)
            )
    return assignments


def compose_daily_plan(
    goals: Iterable[Goal | Mapping[str, Any]] | None,
    energy: int | EnergyBudget | None = 0,
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None = None,
    *,
    now: datetime | None = None,
    storm_buffer_minutes: int | None = None,
    storm_capacity_cost_per_event: int | None = None,
    start_hour: int | None = None,
    end_hour: int | None = None,
    settings: SchedulerSettings | None = None,
) -> Assignments:
    """
    Compose today's plan from routine goals within the energy budget.

    Args:
        goals: Goal list; only routine goals are placed
        energy: Spoon count (1-12), legacy modifier, or an EnergyBudget
        events: Optional calendar events; storm events reduce the budget
        now: Current wall-clock time (defaults to datetime.now())
        storm_buffer_minutes: Minutes blocked around storm events
        storm_capacity_cost_per_event: Spoons removed per storm event

    Returns:
        Hour-keyed assignments for today, starting at the next full hour
    """
    now = now or datetime.now()
    settings = settings or get_settings()
    buffer = settings.storm_buffer_minutes if storm_buffer_minutes is None else storm_buffer_minutes
    goals = [goal for goal in coerce_goals(goals) if goal.is_schedulable]
    if not goals:
        return {}

    today = now.date()
    day_index = day_index_of(today)
    week_start = week_start_for(today)
    energy_budget = resolve_energy_budget(energy, settings)
    budget = energy_budget.spoons

    event_list = coerce_events(events)
    if event_list:
        impact = calculate_storm_impact(
            event_list,
            day_index,
            week_start=week_start,
            buffer_minutes=buffer,
            cost_per_event=storm_capacity_cost_per_event,
            settings=settings,
        )
        budget = max(MIN_SPOONS, budget - impact.capacity_reduction)

    windows = find_available_slots(
        event_list,
        [],
        week_start=week_start,
        start_hour=start_hour,
        end_hour=end_hour,
        storm_buffer_minutes=buffer if event_list else 0,
        day_indices=[day_index],
        earliest_minutes_by_day={day_index: next_full_hour(now.hour * 60 + now.minute)},
        settings=settings,
    )
    slots = hour_slots(windows)
    if not slots:
        logger.info(f"No open hours left on {today.isoformat()}")
        return {}

    work, nourishment = _build_candidates(goals, windows, day_index, settings)
    level = energy_budget.level
    if level is EnergyLevel.LOW:
        selected = _select_low_energy(work, nourishment, budget)
    elif level is EnergyLevel.HIGH:
        selected = _select_high_energy(
            work, nourishment, budget, settings.max_consecutive_work_slots
        )
    else:
        selected = _select_normal(work, nourishment, budget)

    assignments = _place(selected, slots, today, settings.recovery_spoon_threshold)
    logger.info(
        f"Planned {len(assignments)} slot(s) on {today.isoformat()} "
        f"({level.value} energy, {total_spoon_cost(assignments)}/{budget} spoons)"
    )
    return assignments


def plant_routine_block(
    assignments: Mapping[str, Any] | None,
    goal: Goal | Mapping[str, Any],
    *,
    goals: Iterable[Goal | Mapping[str, Any]] | None = None,
    day: date | None = None,
    start_hour: int | None = None,
    end_hour: int | None = None,
    settings: SchedulerSettings | None = None,
) -> Assignments:
    """
    Place one hour of a routine goal in the first empty hour slot.

    ``goals`` is the full goal list the existing entries refer to; entries for
    goals absent from it (and from ``goal``) are dropped.
    """
    settings = settings or get_settings()
    goal = coerce_goal(goal)
    known = coerce_goals(goals)
    if goal is not None:
        known.append(goal)
    current = normalize_assignments(assignments, known)
    if goal is None or not goal.is_schedulable:
        return current
    start_hour = settings.day_start_hour if start_hour is None else start_hour
    end_hour = settings.day_end_hour if end_hour is None else end_hour

    for hour in range(start_hour, end_hour):
        key = hour_key(hour * 60)
        if key in current:
            continue
        planted = dict(current)
        planted[key] = AssignmentEntry(
            id=entry_id(goal.id, (day or "planted"), key, len(current)),
            goal_id=goal.id,
            title=goal.title,
            spoon_cost=goal.spoon_cost,
        )
        return planted
    return current
