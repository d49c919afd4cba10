"""
Boundary data models for the scheduling engine.

Collaborators hand the engine loosely shaped dictionaries (camelCase keys,
legacy nested settings, several assignment shapes). Everything is normalized
here, at the input edge, so the algorithm modules only ever see these models.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

ENTRY_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "urn:kaizen-scheduler:assignment")


class GoalKind(str, Enum):
    """Goal classification. Only routine goals are placed by the engine."""

    ROUTINE = "routine"
    PROJECT = "project"
    KAIZEN = "kaizen"
    VITALITY = "vitality"  # Tracked metric, never scheduled


class ScheduleMode(str, Enum):
    SOLID = "solid"  # Fixed weekdays and start/end time
    LIQUID = "liquid"  # Flexible, packed into open windows


class ScheduleCategory(str, Enum):
    WORK = "work"
    NOURISHMENT = "nourishment"


class EnergyType(str, Enum):
    HIGH_FOCUS = "high-focus"
    MAINTENANCE = "maintenance"
    RESTORATIVE = "restorative"


class Preference(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    BALANCED = "balanced"


class EventType(str, Enum):
    """Drain level of a calendar event."""

    STORM = "storm"  # High drain
    LEAF = "leaf"
    SUN = "sun"


class AssignmentKind(str, Enum):
    ROUTINE = "routine"
    RECOVERY = "recovery"


RITUAL_PREFERENCES = {
    "Morning Heavy": Preference.MORNING,
    "Afternoon Heavy": Preference.AFTERNOON,
}


def _coerce_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Enum:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            return default
    return default


def _hours_to_minutes(value: Any) -> int | None:
    try:
        return int(round(float(value) * 60))
    except (TypeError, ValueError):
        return None


def entry_id(*parts: Any) -> str:
    """Deterministic assignment entry id derived from its identifying parts."""
    return str(uuid.uuid5(ENTRY_NAMESPACE, ":".join(str(part) for part in parts)))


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase keys, emits camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Subtask(CamelModel):
    """Sub-task of a goal, optionally carrying a deadline."""

    id: str | None = None
    title: str = "Untitled"
    estimated_hours: float = 0.0
    completed_hours: float = 0.0
    deadline: date | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str | None:
        return None if v is None else str(v)

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return str(v) if v else "Untitled"

    @field_validator("estimated_hours", "completed_hours", mode="before")
    @classmethod
    def coerce_hours(cls, v: Any) -> float:
        try:
            return max(0.0, float(v))
        except (TypeError, ValueError):
            return 0.0

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_deadline(cls, v: Any) -> date | None:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        if isinstance(v, str) and v:
            try:
                return date.fromisoformat(v[:10])
            except ValueError:
                return None
        return None

    @property
    def remaining_minutes(self) -> int:
        return max(0, int(round((self.estimated_hours - self.completed_hours) * 60)))


class Goal(CamelModel):
    """A unit of recurring or project work."""

    id: str
    title: str = "Untitled"
    kind: GoalKind = GoalKind.ROUTINE
    schedule_mode: ScheduleMode = ScheduleMode.LIQUID
    weekly_target_minutes: int | None = None
    monthly_target_minutes: int | None = None
    schedule_category: ScheduleCategory = ScheduleCategory.WORK
    energy_type: EnergyType = EnergyType.MAINTENANCE
    spoon_cost: int = Field(default=1, ge=1, le=4)
    preference: Preference = Preference.BALANCED
    solid_days: list[int] = Field(default_factory=list)
    solid_start: str = "09:00"
    solid_end: str = "17:00"
    subtasks: list[Subtask] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_shape(cls, data: Any) -> Any:
        """Flatten the legacy ``type`` key and nested ``schedulerSettings`` block."""
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if "kind" not in data and "type" in data:
            data["kind"] = data.pop("type")

        settings = data.pop("schedulerSettings", None) or data.pop("scheduler_settings", None)
        if isinstance(settings, Mapping):
            for legacy_key, key in (
                ("mode", "scheduleMode"),
                ("days", "solidDays"),
                ("start", "solidStart"),
                ("end", "solidEnd"),
                ("preference", "preference"),
            ):
                if legacy_key in settings:
                    data.setdefault(key, settings[legacy_key])
            ritual = settings.get("ritualName")
            if ritual in RITUAL_PREFERENCES:
                data["preference"] = RITUAL_PREFERENCES[ritual]
            if settings.get("weeklyTarget") is not None:
                data.setdefault("weeklyTargetMinutes", _hours_to_minutes(settings["weeklyTarget"]))
            if settings.get("monthlyTarget") is not None:
                data.setdefault("monthlyTargetMinutes", _hours_to_minutes(settings["monthlyTarget"]))

        if data.get("targetHours") is not None:
            data.setdefault("weeklyTargetMinutes", _hours_to_minutes(data["targetHours"]))
        return data

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, (int, uuid.UUID)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return str(v) if v else "Untitled"

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v: Any) -> GoalKind:
        return _coerce_enum(GoalKind, v, GoalKind.ROUTINE)

    @field_validator("schedule_mode", mode="before")
    @classmethod
    def coerce_mode(cls, v: Any) -> ScheduleMode:
        return _coerce_enum(ScheduleMode, v, ScheduleMode.LIQUID)

    @field_validator("schedule_category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> ScheduleCategory:
        return _coerce_enum(ScheduleCategory, v, ScheduleCategory.WORK)

    @field_validator("energy_type", mode="before")
    @classmethod
    def coerce_energy_type(cls, v: Any) -> EnergyType:
        return _coerce_enum(EnergyType, v, EnergyType.MAINTENANCE)

    @field_validator("preference", mode="before")
    @classmethod
    def coerce_preference(cls, v: Any) -> Preference:
        return _coerce_enum(Preference, v, Preference.BALANCED)

    @field_validator("spoon_cost", mode="before")
    @classmethod
    def coerce_spoon_cost(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return 1
        cost = int(v)
        return cost if 1 <= cost <= 4 else 1

    @field_validator("weekly_target_minutes", "monthly_target_minutes", mode="before")
    @classmethod
    def coerce_target(cls, v: Any) -> int | None:
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(round(float(v)))
        except (TypeError, ValueError):
            return None

    @field_validator("solid_days", mode="before")
    @classmethod
    def coerce_days(cls, v: Any) -> list[int]:
        if not isinstance(v, (list, tuple, set)):
            return []
        return [
            d for d in v if isinstance(d, int) and not isinstance(d, bool) and 0 <= d <= 6
        ]

    @field_validator("solid_start", "solid_end", mode="before")
    @classmethod
    def coerce_clock(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("subtasks", mode="before")
    @classmethod
    def coerce_subtasks(cls, v: Any) -> list[Any]:
        if not isinstance(v, (list, tuple)):
            return []
        return [st for st in v if isinstance(st, (Mapping, Subtask))]

    @property
    def is_schedulable(self) -> bool:
        return self.kind is GoalKind.ROUTINE

    def target_minutes(self, default: int = 300) -> int:
        """Weekly target, else a quarter of the monthly target, else the default."""
        if self.weekly_target_minutes is not None:
            return self.weekly_target_minutes
        if self.monthly_target_minutes is not None:
            return self.monthly_target_minutes // 4
        return default


class CalendarEvent(CamelModel):
    """
    Externally sourced busy interval.

    Either absolute (``start``/``end`` ISO datetimes) or weekly
    (``day_index`` 0=Sun..6=Sat with ``start``/``end`` as "HH:MM").
    """

    start: datetime | str | None = None
    end: datetime | str | None = None
    day_index: int | None = None
    type: EventType = EventType.LEAF

    @field_validator("day_index", mode="before")
    @classmethod
    def coerce_day_index(cls, v: Any) -> int | None:
        if isinstance(v, int) and not isinstance(v, bool) and 0 <= v <= 6:
            return v
        return None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> EventType:
        return _coerce_enum(EventType, v, EventType.LEAF)


class AssignmentEntry(CamelModel):
    """One hour slot of a day's plan."""

    id: str
    goal_id: str | None = None
    title: str = "Untitled"
    kind: AssignmentKind = AssignmentKind.ROUTINE
    spoon_cost: int = Field(default=1, ge=0)
    subtask_id: str | None = None
    subtask_title: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def coerce_title(cls, v: Any) -> str:
        return str(v) if v else "Untitled"

    @model_validator(mode="after")
    def validate_recovery(self) -> "AssignmentEntry":
        if self.kind is AssignmentKind.RECOVERY and (
            self.spoon_cost != 0 or self.goal_id is not None
        ):
            raise ValueError("Recovery entries carry no goal and no spoon cost")
        return self

    @classmethod
    def recovery(cls, entry_id: str, title: str = "Recovery") -> "AssignmentEntry":
        return cls(
            id=entry_id, goal_id=None, title=title, kind=AssignmentKind.RECOVERY, spoon_cost=0
        )

    @property
    def is_recovery(self) -> bool:
        return self.kind is AssignmentKind.RECOVERY

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.setdefault("goalId", None)
        return data


# Hour key ("HH:00") -> entry
Assignments = dict[str, AssignmentEntry]


class StormImpact(CamelModel):
    storm_count: int = 0
    capacity_reduction: int = 0
    buffer_minutes_used: int = 0
    reason: str = ""


class DeadlineWarning(CamelModel):
    goal_id: str
    goal_title: str
    subtask_id: str | None = None
    subtask_title: str
    message: str
    remaining_minutes: int = 0
    workable_minutes: int = 0


class RemovedItem(CamelModel):
    hour: str
    title: str
    energy_type: EnergyType
    reason: str


class LoadLighteningResult(CamelModel):
    assignments: Assignments = Field(default_factory=dict)
    removed_items: list[RemovedItem] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignments": assignments_to_dict(self.assignments),
            "removedItems": [item.to_dict() for item in self.removed_items],
        }


def assignments_to_dict(assignments: Mapping[str, AssignmentEntry]) -> dict[str, Any]:
    """Plain-data form of an assignment map, ordered by hour."""
    return {hour: assignments[hour].to_dict() for hour in sorted(assignments)}


def coerce_goals(raw: Iterable[Goal | Mapping[str, Any]] | None) -> list[Goal]:
    """Validate a goal list, skipping records that cannot be read at all."""
    goals: list[Goal] = []
    for index, item in enumerate(raw or []):
        if isinstance(item, Goal):
            goals.append(item)
            continue
        try:
            goals.append(Goal.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed goal at index {index}: {e.error_count()} error(s)")
    return goals


def coerce_goal(raw: Goal | Mapping[str, Any] | None) -> Goal | None:
    """Single-goal form of coerce_goals; None when the record is unreadable."""
    goals = coerce_goals([raw]) if raw is not None else []
    return goals[0] if goals else None


def coerce_events(
    raw: Iterable[CalendarEvent | Mapping[str, Any]] | None,
) -> list[CalendarEvent]:
    """Validate a calendar event list, skipping unreadable records."""
    events: list[CalendarEvent] = []
    for index, item in enumerate(raw or []):
        if isinstance(item, CalendarEvent):
            events.append(item)
            continue
        try:
            events.append(CalendarEvent.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping malformed event at index {index}: {e.error_count()} error(s)")
    return events


def _normalize_assignment_value(
    hour: str, value: Any, goal_map: Mapping[str, Goal]
) -> AssignmentEntry | None:
    if value is None:
        return None
    if isinstance(value, AssignmentEntry):
        return value
    if isinstance(value, str):
        value = {"goalId": value}
    if not isinstance(value, Mapping):
        return None

    kind = value.get("kind") or value.get("type")
    if kind == AssignmentKind.RECOVERY.value:
        return AssignmentEntry.recovery(
            str(value.get("id") or entry_id("recovery", hour)),
            title=str(value.get("title") or "Recovery"),
        )

    goal_id = value.get("goalId") or value.get("goal_id") or value.get("parentGoalId")
    goal_id = str(goal_id) if goal_id is not None else None
    goal = goal_map.get(goal_id) if goal_id else None
    spoon_cost = value.get("spoonCost", value.get("spoon_cost"))
    if spoon_cost is None:
        spoon_cost = goal.spoon_cost if goal else 1
    return AssignmentEntry.model_validate(
        {
            "id": str(value.get("id") or entry_id(goal_id, hour)),
            "goalId": goal_id,
            "title": value.get("title") or value.get("ritualTitle") or (goal.title if goal else None),
            "kind": AssignmentKind.ROUTINE,
            "spoonCost": spoon_cost,
            "subtaskId": value.get("subtaskId"),
            "subtaskTitle": value.get("subtaskTitle"),
        }
    )


def normalize_assignments(
    raw: Mapping[str, Any] | None, goals: Iterable[Goal] = ()
) -> Assignments:
    """
    Convert a collaborator's assignment map into canonical entries.

    Accepts canonical entries, bare goal-id strings, ``{goalId, ...}`` and the
    legacy ``{parentGoalId, title, type, duration}`` shape. Entries for goals
    missing from ``goals`` are dropped; recovery entries are always kept.
    """
    if not isinstance(raw, Mapping):
        return {}
    goal_map = {goal.id: goal for goal in goals}
    assignments: Assignments = {}
    for hour, value in raw.items():
        try:
            entry = _normalize_assignment_value(str(hour), value, goal_map)
        except ValidationError as e:
            logger.warning(f"Skipping malformed assignment at {hour}: {e.error_count()} error(s)")
            continue
        if entry is None:
            continue
        if not entry.is_recovery and entry.goal_id not in goal_map:
            logger.warning(f"Skipping assignment at {hour} for unknown goal {entry.goal_id!r}")
            continue
        assignments[str(hour)] = entry
    return assignments
