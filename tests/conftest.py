"""Shared fixtures: a frozen clock and a service backed by tmp_path storage."""

from datetime import UTC, datetime

import pytest

from learner_progress.config import Settings
from learner_progress.engine.clock import FixedClock
from learner_progress.services.progress import ProgressService
from learner_progress.storage.game_results import GameResultStore
from learner_progress.storage.user_store import UserStore

DAY0 = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


@pytest.fixture
def clock():
    return FixedClock(DAY0)


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=tmp_path, timezone="UTC", backdated_checkin="reject")


@pytest.fixture
def user_store(tmp_path):
    return UserStore(tmp_path)


@pytest.fixture
def game_store(tmp_path):
    return GameResultStore(tmp_path)


@pytest.fixture
def service(user_store, game_store, clock, settings):
    return ProgressService(user_store, game_store, clock, settings)
