from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    """Scheduler tuning settings"""

    # Working hours (local wall clock)
    day_start_hour: int = Field(default=6, ge=0, le=23)
    day_end_hour: int = Field(default=23, ge=1, le=24)

    # Storm (high-drain) calendar events
    storm_buffer_minutes: int = Field(
        default=30, ge=0, description="Minutes blocked on each side of a storm event"
    )
    storm_capacity_cost_per_event: int = Field(
        default=1, ge=0, description="Spoons removed from the budget per storm event"
    )
    storm_capacity_cap: int = Field(
        default=6, ge=0, description="Maximum spoons a single day's storms can remove"
    )

    # Daily plan composition
    recovery_spoon_threshold: int = Field(
        default=3,
        ge=1,
        description="Placing an item at or above this cost forces a recovery slot next",
    )
    max_consecutive_work_slots: int = Field(
        default=4, ge=1, description="High energy: nourishment break after this many work slots"
    )
    default_spoon_budget: int = Field(
        default=6, ge=1, description="Base spoons a legacy energy modifier is applied to"
    )
    low_energy_spoon_limit: int = Field(default=4, ge=1)
    high_energy_spoon_limit: int = Field(default=9, ge=1)

    # Liquid goals without an explicit target
    default_target_minutes: int = Field(default=300, ge=0)

    @model_validator(mode="after")
    def validate_working_hours(self) -> "SchedulerSettings":
        """Working window must be non-empty"""
        if self.day_end_hour <= self.day_start_hour:
            raise ValueError("day_end_hour must be after day_start_hour")
        return self

    @property
    def day_start_minutes(self) -> int:
        return self.day_start_hour * 60

    @property
    def day_end_minutes(self) -> int:
        return self.day_end_hour * 60

    model_config = SettingsConfigDict(
        env_prefix="KAIZEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )


@lru_cache
def get_settings() -> SchedulerSettings:
    """Settings loaded from the environment, cached for the process"""
    return SchedulerSettings()
