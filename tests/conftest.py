"""Shared fixtures for taskboard tests."""

from datetime import datetime

import pytest

from taskboard.models import TaskboardSettings
from taskboard.store import TaskManager

BASE_TIME = datetime(2024, 1, 1)


@pytest.fixture
def settings(tmp_path):
    """Settings with a fixed horizon starting 2024-01-01."""
    return TaskboardSettings(
        base_time=BASE_TIME,
        slot_minutes=15,
        horizon_days=365,
        data_file=tmp_path / "tasks.csv",
    )


@pytest.fixture
def manager(settings):
    """Empty in-memory task manager."""
    return TaskManager(settings)

