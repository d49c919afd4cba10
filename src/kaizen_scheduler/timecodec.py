"""Conversions between "HH:MM" wall-clock strings and minutes since midnight."""

from __future__ import annotations

from typing import Any

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


def to_minutes(value: Any) -> int:
    """Parse "HH:MM" (or "HH") into minutes since midnight; malformed input is 0."""
    if not isinstance(value, str) or not value.strip():
        return 0
    parts = value.strip().split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        return 0
    if hours < 0 or minutes < 0:
        return 0
    return hours * MINUTES_PER_HOUR + minutes


def to_time_string(minutes: Any) -> str:
    """Format minutes since midnight as "HH:MM"; malformed input is "00:00"."""
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
        return "00:00"
    total = int(minutes)
    if total < 0:
        return "00:00"
    hours, mins = divmod(total, MINUTES_PER_HOUR)
    return f"{hours:02d}:{mins:02d}"


def hour_key(minutes: int) -> str:
    """Assignment key ("HH:00") of the hour containing the given minute."""
    return to_time_string((minutes // MINUTES_PER_HOUR) * MINUTES_PER_HOUR)


def next_full_hour(minutes: int) -> int:
    """First whole hour strictly after the given minute."""
    return (minutes // MINUTES_PER_HOUR + 1) * MINUTES_PER_HOUR
