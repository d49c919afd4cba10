from datetime import date, datetime

import pytest

from kaizen_scheduler import SchedulerSettings

# Wednesday; the planned week starts Monday 2025-01-13
FIXED_NOW = datetime(2025, 1, 15, 8, 30)
WEEK_START = date(2025, 1, 13)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def week_start():
    return WEEK_START


@pytest.fixture
def settings():
    """Default tuning, independent of any KAIZEN_* environment."""
    return SchedulerSettings(_env_file=None)

