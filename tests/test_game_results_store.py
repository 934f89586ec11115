"""Tests for per-user game result history."""

from datetime import datetime
from unittest.mock import patch

import pytest

from learner_progress.errors import StorageError
from learner_progress.models.game import Difficulty, GameResult


def _game(score: float, game_type: str = "memory-match") -> GameResult:
    return GameResult(
        game_type=game_type,
        score=score,
        max_score=100,
        accuracy=0.8,
        duration=75,
        completed_level=True,
        difficulty=Difficulty.EASY,
        timestamp=datetime(2026, 3, 2, 10, 0, 0),
    )


class TestHistory:
    def test_empty_history(self, game_store):
        assert game_store.history("asha") == []
        assert game_store.latest("asha") is None

    def test_append_creates_file(self, game_store, tmp_path):
        game_store.append("asha", [_game(40)])
        assert (tmp_path / "game_results" / "asha.json").exists()

    def test_append_nothing_writes_nothing(self, game_store, tmp_path):
        game_store.append("asha", [])
        assert not (tmp_path / "game_results" / "asha.json").exists()

    def test_entries_keep_order(self, game_store):
        game_store.append("asha", [_game(10), _game(20)])
        game_store.append("asha", [_game(30)])

        scores = [g.score for g in game_store.history("asha")]
        assert scores == [10, 20, 30]
        assert game_store.latest("asha").score == 30

    def test_limit_keeps_most_recent(self, game_store):
        game_store.append("asha", [_game(s) for s in (1, 2, 3, 4)])
        assert [g.score for g in game_store.history("asha", limit=2)] == [3, 4]
        assert game_store.history("asha", limit=0) == []

    def test_roundtrip_fields(self, game_store):
        game = _game(55, "odd-one-out")
        game_store.append("asha", [game])
        assert game_store.latest("asha") == game


class TestHighscores:
    def test_sorted_across_users(self, game_store):
        game_store.append("asha", [_game(40), _game(90)])
        game_store.append("ravi", [_game(70)])

        top = game_store.highscores(limit=2)
        assert [(e.user_id, e.score) for e in top] == [("asha", 90), ("ravi", 70)]

    def test_empty(self, game_store):
        assert game_store.highscores() == []

    @pytest.mark.parametrize(
        "content",
        ["[]", "{not json", '{"results": "x"}', '{"scores": []}', '{"results": [42, "x"]}'],
    )
    def test_malformed_file_skipped(self, game_store, tmp_path, content):
        game_store.append("asha", [_game(60)])
        (tmp_path / "game_results" / "other.json").write_text(content)

        top = game_store.highscores()
        assert [(e.user_id, e.score) for e in top] == [("asha", 60)]

    def test_leftover_temp_file_ignored(self, game_store, tmp_path):
        game_store.append("asha", [_game(60)])
        leftover = tmp_path / "game_results" / ".asha.ab12cd.tmp"
        leftover.write_text((tmp_path / "game_results" / "asha.json").read_text())

        assert [e.user_id for e in game_store.highscores()] == ["asha"]


def test_malformed_history_raises(game_store, tmp_path):
    (tmp_path / "game_results" / "asha.json").write_text("[]")
    with pytest.raises(StorageError):
        game_store.history("asha")


def test_failed_write_leaves_no_temp_file(game_store, tmp_path):
    game_store.append("asha", [_game(10)])
    with patch("learner_progress.storage.user_store.os.replace", side_effect=OSError("disk full")):
        with pytest.raises(StorageError):
            game_store.append("asha", [_game(20)])

    assert sorted(p.name for p in (tmp_path / "game_results").iterdir()) == ["asha.json", "asha.json.lock"]
    assert [g.score for g in game_store.history("asha")] == [10]
