from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from .availability import normalize_events
from .config import SchedulerSettings, get_settings
from .models import CalendarEvent, EventType, StormImpact, coerce_events

logger = logging.getLogger(__name__)


def calculate_storm_impact(
    events: Iterable[CalendarEvent | Mapping[str, Any]] | None,
    day_index: int,
    *,
    week_start: date | datetime,
    buffer_minutes: int | None = None,
    cost_per_event: int | None = None,
    settings: SchedulerSettings | None = None,
) -> StormImpact:
    """
    Quantify how much a day's storm (high-drain) events cost.

    Each storm event removes ``cost_per_event`` spoons, capped so one bad day
    never removes more than ``storm_capacity_cap``. Blocked minutes count the
    event itself plus the buffer on both sides.
    """
    settings = settings or get_settings()
    buffer = settings.storm_buffer_minutes if buffer_minutes is None else max(0, buffer_minutes)
    cost = settings.storm_capacity_cost_per_event if cost_per_event is None else max(0, cost_per_event)

    storms = [
        norm
        for norm in normalize_events(coerce_events(events), week_start)
        if norm.day_index == day_index and norm.type is EventType.STORM
    ]
    storm_count = len(storms)
    if storm_count == 0:
        return StormImpact(reason="No storm events today; full capacity available.")

    capacity_reduction = min(storm_count * cost, settings.storm_capacity_cap)
    buffer_minutes_used = sum(
        (norm.end_minutes - norm.start_minutes) + 2 * buffer for norm in storms
    )
    noun = "event" if storm_count == 1 else "events"
    spoons = "spoon" if capacity_reduction == 1 else "spoons"
    reason = (
        f"{storm_count} storm {noun} today: capacity reduced by {capacity_reduction} {spoons}, "
        f"{buffer_minutes_used} minutes blocked including buffers."
    )
    logger.debug(reason)
    return StormImpact(
        storm_count=storm_count,
        capacity_reduction=capacity_reduction,
        buffer_minutes_used=buffer_minutes_used,
        reason=reason,
    )
