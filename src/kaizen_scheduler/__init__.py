"""Capacity-constrained time-blocking engine.

This package is intentionally I/O free. Collaborators hand it goals, calendar
events and an energy budget; it returns plain scheduling data. All clock
dependent operations take an explicit ``now``.
"""

from .availability import (
    Interval,
    TimeWindow,
    find_available_slots,
    merge_intervals,
    normalize_event,
    week_start_for,
)
from .config import SchedulerSettings, get_settings
from .daily import (
    EnergyBudget,
    EnergyLevel,
    compose_daily_plan,
    plant_routine_block,
    resolve_energy_budget,
    total_spoon_cost,
)
from .deadlines import check_deadlines
from .lightening import suggest_load_lightening
from .models import (
    AssignmentEntry,
    AssignmentKind,
    Assignments,
    CalendarEvent,
    DeadlineWarning,
    EnergyType,
    EventType,
    Goal,
    GoalKind,
    LoadLighteningResult,
    Preference,
    RemovedItem,
    ScheduleCategory,
    ScheduleMode,
    StormImpact,
    Subtask,
    assignments_to_dict,
    normalize_assignments,
)
from .routines import ScheduledBlock, generate_liquid_schedule, generate_solid_schedule
from .storm import calculate_storm_impact
from .timecodec import to_minutes, to_time_string
from .weekly import auto_fill_week, materialize_week_plan

__version__ = "0.1.0"
__all__ = [
    "AssignmentEntry",
    "AssignmentKind",
    "Assignments",
    "assignments_to_dict",
    "auto_fill_week",
    "calculate_storm_impact",
    "CalendarEvent",
    "check_deadlines",
    "compose_daily_plan",
    "DeadlineWarning",
    "EnergyBudget",
    "EnergyLevel",
    "EnergyType",
    "EventType",
    "find_available_slots",
    "generate_liquid_schedule",
    "generate_solid_schedule",
    "get_settings",
    "Goal",
    "GoalKind",
    "Interval",
    "LoadLighteningResult",
    "materialize_week_plan",
    "merge_intervals",
    "normalize_assignments",
    "normalize_event",
    "plant_routine_block",
    "Preference",
    "RemovedItem",
    "resolve_energy_budget",
    "ScheduleCategory",
    "ScheduledBlock",
    "ScheduleMode",
    "SchedulerSettings",
    "StormImpact",
    "Subtask",
    "suggest_load_lightening",
    "TimeWindow",
    "to_minutes",
    "to_time_string",
    "total_spoon_cost",
    "week_start_for",
]
