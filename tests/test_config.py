"""Tests for settings loading and classifier threshold configuration."""

import pytest
from pydantic import ValidationError

from learner_progress.config import Settings, load_classifier_thresholds
from learner_progress.engine.classifier import ClassifierThresholds
from learner_progress.engine.streak import StreakPolicy
from learner_progress.models.game import Difficulty


class TestSettings:
    def test_defaults(self, tmp_path):
        settings = Settings(data_dir=tmp_path)
        assert settings.timezone == "UTC"
        assert settings.streak_history_limit == 30
        assert settings.streak_status_window == 7
        assert settings.backdated_checkin == "reject"
        assert settings.lesson_xp == 10
        assert settings.game_xp_divisor == 10
        assert settings.app_secret is None

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TIMEZONE", "Asia/Kolkata")
        monkeypatch.setenv("BACKDATED_CHECKIN", "ignore")
        settings = Settings(data_dir=tmp_path)
        assert settings.timezone == "Asia/Kolkata"
        assert settings.backdated_checkin == "ignore"

    def test_invalid_backdated_policy(self, tmp_path):
        with pytest.raises(ValidationError):
            Settings(data_dir=tmp_path, backdated_checkin="shrug")

    def test_unknown_timezone_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            Settings(data_dir=tmp_path, timezone="Mars/Olympus_Mons")

    def test_storage_dir_created(self, tmp_path):
        settings = Settings(data_dir=tmp_path / "store")
        assert settings.storage_dir.is_dir()

    def test_origins_split(self, tmp_path):
        settings = Settings(data_dir=tmp_path, allowed_origins="http://a.test, http://b.test,")
        assert settings.origins == ["http://a.test", "http://b.test"]

    def test_streak_policy_from_settings(self, tmp_path):
        settings = Settings(data_dir=tmp_path, timezone="Asia/Tokyo", streak_history_limit=14)
        policy = StreakPolicy.from_settings(settings)
        assert policy.timezone == "Asia/Tokyo"
        assert policy.history_limit == 14
        assert policy.status_window == 7


class TestClassifierThresholds:
    def test_bundled_config_matches_defaults(self):
        assert load_classifier_thresholds() == ClassifierThresholds()

    def test_custom_file(self, tmp_path):
        path = tmp_path / "classifier.yaml"
        path.write_text(
            "classifier:\n"
            "  fast_accuracy: 0.95\n"
            "  min_votes: 3\n"
            "  fast_pace:\n"
            "    easy: 30\n"
        )
        thresholds = load_classifier_thresholds(path)
        assert thresholds.fast_accuracy == 0.95
        assert thresholds.min_votes == 3
        assert thresholds.fast_pace == {Difficulty.EASY: 30.0}
        assert thresholds.slow_accuracy == 0.5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_classifier_thresholds(tmp_path / "nope.yaml")

    def test_out_of_range_threshold(self):
        with pytest.raises(ValidationError):
            ClassifierThresholds(fast_accuracy=1.5)
