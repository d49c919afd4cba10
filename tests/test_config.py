"""Tests for scheduler settings."""

import pytest
from pydantic import ValidationError

from kaizen_scheduler.config import SchedulerSettings, get_settings


class TestSchedulerSettings:
    def test_defaults(self, settings):
        assert settings.day_start_hour == 6
        assert settings.day_end_hour == 23
        assert settings.storm_buffer_minutes == 30
        assert settings.storm_capacity_cap == 6
        assert settings.recovery_spoon_threshold == 3
        assert settings.day_start_minutes == 360
        assert settings.day_end_minutes == 1380

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("KAIZEN_STORM_BUFFER_MINUTES", "45")
        monkeypatch.setenv("KAIZEN_DAY_END_HOUR", "22")
        settings = SchedulerSettings(_env_file=None)
        assert settings.storm_buffer_minutes == 45
        assert settings.day_end_hour == 22

    def test_empty_working_window_is_rejected(self):
        with pytest.raises(ValidationError):
            SchedulerSettings(_env_file=None, day_start_hour=10, day_end_hour=9)

    def test_negative_buffer_is_rejected(self):
        with pytest.raises(ValidationError):
            SchedulerSettings(_env_file=None, storm_buffer_minutes=-1)

    def test_frozen(self, settings):
        with pytest.raises(ValidationError):
            settings.storm_buffer_minutes = 10

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
