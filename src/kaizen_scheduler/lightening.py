from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .daily import total_spoon_cost
from .models import (
    EnergyType,
    Goal,
    LoadLighteningResult,
    RemovedItem,
    coerce_goals,
    normalize_assignments,
)

logger = logging.getLogger(__name__)

# Lower value is removed first
REMOVE_ORDER_LOW_ENERGY = {
    EnergyType.HIGH_FOCUS: 0,
    EnergyType.MAINTENANCE: 1,
    EnergyType.RESTORATIVE: 2,
}
REMOVE_ORDER_HIGH_ENERGY = {
    EnergyType.RESTORATIVE: 0,
    EnergyType.MAINTENANCE: 1,
    EnergyType.HIGH_FOCUS: 2,
}

LOW_ENERGY_REASONS = {
    EnergyType.HIGH_FOCUS: "Low energy: removed high-focus task to protect your capacity.",
    EnergyType.MAINTENANCE: "Low energy: removed maintenance task to lighten the load.",
    EnergyType.RESTORATIVE: "Low energy: kept restorative tasks; removed this to fit capacity.",
}
HIGH_ENERGY_REASONS = {
    EnergyType.RESTORATIVE: "High energy: removed restorative task to free space for focus work.",
    EnergyType.MAINTENANCE: "High energy: removed maintenance task to fit capacity.",
    EnergyType.HIGH_FOCUS: "High energy: kept focus work; removed this to fit capacity.",
}
OVER_CAPACITY_REASON = "Over capacity: removed late-day task to fit your limit."


@dataclass(frozen=True)
class _Filled:
    hour: str
    title: str
    energy_type: EnergyType
    spoon_cost: int


def _removal_reason(energy_type: EnergyType, modifier: int) -> str:
    if modifier < 0:
        return LOW_ENERGY_REASONS[energy_type]
    if modifier > 0:
        return HIGH_ENERGY_REASONS[energy_type]
    return OVER_CAPACITY_REASON


def suggest_load_lightening(
    assignments: Mapping[str, Any] | None,
    goals: Iterable[Goal | Mapping[str, Any]] | None,
    max_spoons: int,
    energy_modifier: int = 0,
) -> LoadLighteningResult | None:
    """
    Suggest a lighter day when the filled slots cost more than the budget.

    Low energy sheds high-focus work first, high energy sheds restorative
    items first, neutral energy sheds the latest hours first. Recovery slots
    are never removed.

    Args:
        assignments: Current hour-keyed plan (canonical or legacy shapes)
        goals: Goal list, used for energy types and unknown-goal filtering
        max_spoons: Budget the day has to fit
        energy_modifier: Negative for low energy, positive for high

    Returns:
        The trimmed plan with an explanation per removal, or None when the
        plan already fits
    """
    goal_list = coerce_goals(goals)
    goal_map = {goal.id: goal for goal in goal_list}
    current = normalize_assignments(assignments, goal_list)

    filled = [
        _Filled(hour, entry.title, goal_map[entry.goal_id].energy_type, entry.spoon_cost)
        for hour, entry in current.items()
        if not entry.is_recovery and entry.goal_id in goal_map and entry.spoon_cost > 0
    ]
    total = sum(item.spoon_cost for item in filled)
    if total <= max_spoons:
        return None

    modifier = int(energy_modifier or 0)
    order = (
        REMOVE_ORDER_LOW_ENERGY if modifier < 0 else REMOVE_ORDER_HIGH_ENERGY if modifier > 0 else None
    )
    # Latest hour first within the same priority
    candidates = sorted(filled, key=lambda item: item.hour, reverse=True)
    if order is not None:
        candidates.sort(key=lambda item: order[item.energy_type])

    remaining = dict(current)
    removed: list[RemovedItem] = []
    for item in candidates:
        if total <= max_spoons:
            break
        del remaining[item.hour]
        total -= item.spoon_cost
        removed.append(
            RemovedItem(
                hour=item.hour,
                title=item.title,
                energy_type=item.energy_type,
                reason=_removal_reason(item.energy_type, modifier),
            )
        )

    logger.info(
        f"Lightened load by {len(removed)} slot(s); {total_spoon_cost(remaining)} spoons remain"
    )
    return LoadLighteningResult(assignments=remaining, removed_items=removed)
