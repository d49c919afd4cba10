"""Tests for load-lightening suggestions."""

import pytest

from kaizen_scheduler.lightening import (
    HIGH_ENERGY_REASONS,
    LOW_ENERGY_REASONS,
    OVER_CAPACITY_REASON,
    suggest_load_lightening,
)
from kaizen_scheduler.models import AssignmentEntry, EnergyType


@pytest.fixture
def goals():
    return [
        {"id": "focus", "title": "Deep work", "energyType": "high-focus", "spoonCost": 2},
        {"id": "chores", "title": "Chores", "energyType": "maintenance"},
        {"id": "walk", "title": "Walk", "energyType": "restorative"},
    ]


@pytest.fixture
def day_plan():
    return {
        "09:00": {"goalId": "focus", "title": "Deep work", "spoonCost": 2},
        "10:00": {"goalId": "chores", "title": "Chores", "spoonCost": 1},
        "11:00": {"goalId": "walk", "title": "Walk", "spoonCost": 1},
    }


def _removed_hours(result):
    return [item.hour for item in result.removed_items]


class TestSuggestLoadLightening:
    """Removal order by energy level."""

    def test_within_budget_is_none(self, day_plan, goals):
        assert suggest_load_lightening(day_plan, goals, 4) is None
        assert suggest_load_lightening(day_plan, goals, 10, -2) is None

    def test_low_energy_sheds_high_focus_first(self, day_plan, goals):
        result = suggest_load_lightening(day_plan, goals, 2, -2)
        assert _removed_hours(result) == ["09:00"]
        assert sorted(result.assignments) == ["10:00", "11:00"]
        assert result.removed_items[0].energy_type is EnergyType.HIGH_FOCUS
        assert result.removed_items[0].reason == LOW_ENERGY_REASONS[EnergyType.HIGH_FOCUS]

    def test_high_energy_sheds_restorative_first(self, day_plan, goals):
        result = suggest_load_lightening(day_plan, goals, 3, 1)
        assert _removed_hours(result) == ["11:00"]
        assert result.removed_items[0].reason == HIGH_ENERGY_REASONS[EnergyType.RESTORATIVE]

    def test_neutral_energy_sheds_latest_hours(self, day_plan, goals):
        result = suggest_load_lightening(day_plan, goals, 2, 0)
        assert _removed_hours(result) == ["11:00", "10:00"]
        assert all(item.reason == OVER_CAPACITY_REASON for item in result.removed_items)
        assert sorted(result.assignments) == ["09:00"]

    def test_latest_hour_first_within_priority(self, goals):
        plan = {
            "09:00": {"goalId": "chores", "spoonCost": 1},
            "14:00": {"goalId": "chores", "spoonCost": 1},
            "16:00": {"goalId": "walk", "spoonCost": 1},
        }
        result = suggest_load_lightening(plan, goals, 2, -2)
        assert _removed_hours(result) == ["14:00"]

    def test_recovery_is_never_removed(self, goals):
        plan = {
            "09:00": {"goalId": "focus", "spoonCost": 3},
            "10:00": AssignmentEntry.recovery("r1"),
            "11:00": {"goalId": "focus", "spoonCost": 3},
        }
        result = suggest_load_lightening(plan, goals, 3, 0)
        assert _removed_hours(result) == ["11:00"]
        assert result.assignments["10:00"].is_recovery

    def test_unknown_goals_are_not_counted(self, goals):
        plan = {
            "09:00": {"goalId": "ghost", "spoonCost": 4},
            "10:00": {"goalId": "chores", "spoonCost": 1},
        }
        assert suggest_load_lightening(plan, goals, 1) is None

    def test_unknown_goals_are_dropped_from_result(self, goals):
        plan = {"09:00": "ghost", "10:00": "chores", "11:00": "chores"}
        result = suggest_load_lightening(plan, goals, 1)
        kept = [entry.goal_id for entry in result.assignments.values()]
        assert "ghost" not in kept
        assert kept == ["chores"]
        assert _removed_hours(result) == ["11:00"]

    def test_legacy_shapes(self, goals):
        plan = {
            "09:00": "focus",
            "10:00": {"parentGoalId": "chores", "title": "Laundry", "type": "routine", "duration": 60},
        }
        result = suggest_load_lightening(plan, goals, 1, -2)
        assert _removed_hours(result) == ["09:00"]
        assert result.assignments["10:00"].title == "Laundry"

    def test_result_fits_budget(self, day_plan, goals):
        for modifier in (-2, 0, 1):
            result = suggest_load_lightening(day_plan, goals, 1, modifier)
            kept = sum(
                entry.spoon_cost for entry in result.assignments.values() if not entry.is_recovery
            )
            assert kept <= 1

    def test_to_dict(self, day_plan, goals):
        data = suggest_load_lightening(day_plan, goals, 2, -2).to_dict()
        assert list(data["assignments"]) == ["10:00", "11:00"]
        assert data["removedItems"][0]["energyType"] == "high-focus"
        assert data["removedItems"][0]["hour"] == "09:00"
