"""Tests for boundary model normalization."""

import logging
from datetime import date

import pytest
from pydantic import ValidationError

from kaizen_scheduler.models import (
    AssignmentEntry,
    AssignmentKind,
    CalendarEvent,
    EnergyType,
    EventType,
    Goal,
    GoalKind,
    Preference,
    ScheduleCategory,
    ScheduleMode,
    Subtask,
    assignments_to_dict,
    coerce_events,
    coerce_goals,
    entry_id,
    normalize_assignments,
)


class TestGoal:
    """Goal validation and legacy shapes."""

    def test_defaults(self):
        goal = Goal(id="g1")
        assert goal.kind is GoalKind.ROUTINE
        assert goal.schedule_mode is ScheduleMode.LIQUID
        assert goal.schedule_category is ScheduleCategory.WORK
        assert goal.energy_type is EnergyType.MAINTENANCE
        assert goal.spoon_cost == 1
        assert goal.title == "Untitled"

    def test_camel_case_input(self):
        goal = Goal.model_validate(
            {
                "id": "g1",
                "title": "Deep work",
                "scheduleMode": "solid",
                "solidDays": [1, 3],
                "solidStart": "09:00",
                "solidEnd": "10:00",
                "energyType": "high-focus",
                "spoonCost": 3,
            }
        )
        assert goal.schedule_mode is ScheduleMode.SOLID
        assert goal.solid_days == [1, 3]
        assert goal.energy_type is EnergyType.HIGH_FOCUS
        assert goal.spoon_cost == 3

    def test_legacy_scheduler_settings_are_flattened(self):
        """Nested schedulerSettings and the type key map onto flat fields"""
        goal = Goal.model_validate(
            {
                "id": 1,
                "title": "Run",
                "type": "routine",
                "schedulerSettings": {
                    "mode": "solid",
                    "days": [1, 9, "x"],
                    "start": "07:00",
                    "end": "08:00",
                    "ritualName": "Afternoon Heavy",
                    "weeklyTarget": 3,
                },
            }
        )
        assert goal.id == "1"
        assert goal.kind is GoalKind.ROUTINE
        assert goal.schedule_mode is ScheduleMode.SOLID
        assert goal.solid_days == [1]
        assert goal.solid_start == "07:00"
        assert goal.preference is Preference.AFTERNOON
        assert goal.weekly_target_minutes == 180

    def test_target_hours_shorthand(self):
        goal = Goal.model_validate({"id": "g", "targetHours": 1.5})
        assert goal.weekly_target_minutes == 90

    def test_lenient_coercion(self):
        """Out-of-range or unknown values fall back to defaults"""
        goal = Goal.model_validate(
            {
                "id": "g",
                "spoonCost": 9,
                "energyType": "zen",
                "scheduleCategory": "NOURISHMENT",
                "kind": 42,
                "solidDays": "monday",
                "subtasks": [{"title": "ok"}, "junk"],
            }
        )
        assert goal.spoon_cost == 1
        assert goal.energy_type is EnergyType.MAINTENANCE
        assert goal.schedule_category is ScheduleCategory.NOURISHMENT
        assert goal.kind is GoalKind.ROUTINE
        assert goal.solid_days == []
        assert [st.title for st in goal.subtasks] == ["ok"]

    def test_only_routine_goals_are_schedulable(self):
        assert Goal(id="a", kind="routine").is_schedulable
        assert not Goal(id="b", kind="project").is_schedulable
        assert not Goal(id="c", kind="vitality").is_schedulable

    def test_target_minutes_fallbacks(self):
        assert Goal(id="a", weekly_target_minutes=120).target_minutes() == 120
        assert Goal(id="b", monthly_target_minutes=480).target_minutes() == 120
        assert Goal(id="c").target_minutes() == 300
        assert Goal(id="d").target_minutes(default=60) == 60


class TestSubtask:
    def test_remaining_minutes(self):
        subtask = Subtask(estimated_hours=2.5, completed_hours=1)
        assert subtask.remaining_minutes == 90

    def test_over_completed_is_zero(self):
        assert Subtask(estimated_hours=1, completed_hours=3).remaining_minutes == 0

    def test_deadline_parsing(self):
        assert Subtask(deadline="2025-01-20T00:00:00Z").deadline == date(2025, 1, 20)
        assert Subtask(deadline="2025-01-20").deadline == date(2025, 1, 20)
        assert Subtask(deadline="garbage").deadline is None

    def test_bad_hours_are_zero(self):
        subtask = Subtask.model_validate({"estimatedHours": "abc", "completedHours": -2})
        assert subtask.estimated_hours == 0.0
        assert subtask.completed_hours == 0.0


class TestCoercion:
    """List-level coercion skips unreadable records."""

    def test_goals_without_id_are_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="kaizen_scheduler.models"):
            goals = coerce_goals([{"id": "ok"}, {"title": "no id"}, "junk"])
        assert [goal.id for goal in goals] == ["ok"]
        assert "Skipping malformed goal" in caplog.text

    def test_goal_instances_pass_through(self):
        goal = Goal(id="g")
        assert coerce_goals([goal])[0] is goal
        assert coerce_goals(None) == []

    def test_events(self):
        events = coerce_events(
            [
                {"dayIndex": 2, "start": "09:00", "end": "10:00", "type": "storm"},
                {"start": "2025-01-15T10:00:00", "end": "2025-01-15T11:00:00"},
                7,
            ]
        )
        assert len(events) == 2
        assert events[0].day_index == 2
        assert events[0].type is EventType.STORM
        assert events[1].type is EventType.LEAF

    def test_event_out_of_range_day_index_is_dropped(self):
        event = CalendarEvent.model_validate({"dayIndex": 9, "start": "09:00", "end": "10:00"})
        assert event.day_index is None


class TestAssignmentEntry:
    def test_recovery_carries_no_goal_or_cost(self):
        entry = AssignmentEntry.recovery("r1")
        assert entry.is_recovery
        assert entry.spoon_cost == 0
        assert entry.goal_id is None

    def test_recovery_with_cost_is_rejected(self):
        with pytest.raises(ValidationError):
            AssignmentEntry(id="x", kind="recovery", spoon_cost=2)

    def test_recovery_with_goal_is_rejected(self):
        with pytest.raises(ValidationError):
            AssignmentEntry(id="x", kind="recovery", spoon_cost=0, goal_id="g1")

    def test_to_dict_is_camel_case(self):
        entry = AssignmentEntry(
            id="e1", goal_id="g1", title="Write", spoon_cost=2, subtask_id="s1", subtask_title="Draft"
        )
        assert entry.to_dict() == {
            "id": "e1",
            "goalId": "g1",
            "title": "Write",
            "kind": "routine",
            "spoonCost": 2,
            "subtaskId": "s1",
            "subtaskTitle": "Draft",
        }

    def test_recovery_to_dict_keeps_null_goal(self):
        data = AssignmentEntry.recovery("r1").to_dict()
        assert data["goalId"] is None
        assert data["kind"] == "recovery"

    def test_entry_id_is_deterministic(self):
        assert entry_id("g1", "2025-01-15", "09:00") == entry_id("g1", "2025-01-15", "09:00")
        assert entry_id("g1", "2025-01-15", "09:00") != entry_id("g1", "2025-01-15", "10:00")


class TestNormalizeAssignments:
    """Collaborator assignment maps in every accepted shape."""

    @pytest.fixture
    def goals(self):
        return [
            Goal(id="g1", title="Focus", spoon_cost=2),
            Goal(id="g2", title="Chores"),
        ]

    def test_mixed_shapes(self, goals):
        raw = {
            "09:00": "g1",
            "10:00": {"parentGoalId": "g2", "title": "Laundry", "type": "routine", "duration": 60},
            "11:00": {"type": "recovery"},
            "12:00": None,
            "13:00": {"goalId": "g1", "spoonCost": 4},
        }
        result = normalize_assignments(raw, goals)

        assert sorted(result) == ["09:00", "10:00", "11:00", "13:00"]
        assert result["09:00"].goal_id == "g1"
        assert result["09:00"].title == "Focus"
        assert result["09:00"].spoon_cost == 2
        assert result["10:00"].goal_id == "g2"
        assert result["10:00"].title == "Laundry"
        assert result["10:00"].spoon_cost == 1
        assert result["11:00"].kind is AssignmentKind.RECOVERY
        assert result["13:00"].spoon_cost == 4

    def test_negative_cost_is_skipped(self, goals, caplog):
        with caplog.at_level(logging.WARNING, logger="kaizen_scheduler.models"):
            result = normalize_assignments({"09:00": {"goalId": "g1", "spoonCost": -1}}, goals)
        assert result == {}
        assert "Skipping malformed assignment" in caplog.text

    def test_unknown_goals_are_dropped(self, goals, caplog):
        """Entries never carry a goal id missing from the goal list"""
        raw = {
            "09:00": "ghost",
            "10:00": {"goalId": "ghost", "spoonCost": 1},
            "11:00": {"title": "No goal"},
            "12:00": "g2",
        }
        with caplog.at_level(logging.WARNING, logger="kaizen_scheduler.models"):
            result = normalize_assignments(raw, goals)
        assert list(result) == ["12:00"]
        assert "unknown goal 'ghost'" in caplog.text

    def test_recovery_needs_no_goal(self):
        result = normalize_assignments({"10:00": {"type": "recovery"}})
        assert result["10:00"].is_recovery

    def test_missing_title_falls_back_to_goal(self, goals):
        result = normalize_assignments({"09:00": {"goalId": "g2", "title": ""}}, goals)
        assert result["09:00"].title == "Chores"

    def test_non_mapping_input(self):
        assert normalize_assignments(None) == {}
        assert normalize_assignments(["09:00"]) == {}

    def test_assignments_to_dict_orders_by_hour(self, goals):
        result = normalize_assignments({"11:00": "g2", "09:00": "g1"}, goals)
        assert list(assignments_to_dict(result)) == ["09:00", "11:00"]
