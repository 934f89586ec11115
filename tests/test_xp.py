"""Tests for XP accumulation, levelling and offline sync."""

from datetime import UTC, datetime

import pytest

from learner_progress.engine.xp import (
    XP_PER_LEVEL,
    add_xp,
    game_xp,
    lesson_xp,
    level_for_xp,
    sync_xp,
    xp_status,
)
from learner_progress.errors import InvalidInput
from learner_progress.models.user import StreakEntry, User

NOW = datetime(2026, 3, 2, 9, 30, tzinfo=UTC)


def _user(xp: int = 0) -> User:
    return User(user_id="u1", name="Asha", xp=xp, level=level_for_xp(xp))


class TestLevelForXp:
    @pytest.mark.parametrize(
        ("xp", "level"),
        [(0, 1), (99, 1), (100, 2), (199, 2), (250, 3), (1000, 11)],
    )
    def test_bands(self, xp, level):
        assert level_for_xp(xp) == level

    def test_band_size(self):
        assert XP_PER_LEVEL == 100


class TestAddXp:
    def test_crosses_level_boundary(self):
        updated, result = add_xp(_user(95), 10, "quiz", NOW)

        assert updated.xp == 105
        assert updated.level == 2
        assert result.xp == 105
        assert result.level == 2
        assert result.message == "Added 10 XP from quiz"
        assert updated.last_xp_update == NOW

    def test_default_source_in_message(self):
        _, result = add_xp(_user(), 5, None, NOW)
        assert result.message == "Added 5 XP from activity"

    def test_whole_float_accepted(self):
        updated, _ = add_xp(_user(), 20.0, "lesson", NOW)
        assert updated.xp == 20

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True, "10", None])
    def test_invalid_amount(self, amount):
        user = _user(40)
        with pytest.raises(InvalidInput):
            add_xp(user, amount, "quiz", NOW)
        assert user.xp == 40

    def test_input_history_not_shared(self):
        user = _user(40).model_copy(update={"streak_history": [StreakEntry(date=NOW.date())]})
        updated, _ = add_xp(user, 10, "quiz", NOW)
        updated.streak_history.append(StreakEntry(date=NOW.date()))
        assert len(user.streak_history) == 1

    def test_level_invariant_holds_across_awards(self):
        user = _user()
        for amount in (7, 93, 1, 250, 49, 100, 3):
            user, _ = add_xp(user, amount, "game", NOW)
            assert user.level == user.xp // 100 + 1


class TestSyncXp:
    def test_lower_client_value_is_ignored(self):
        user = _user(50)
        same, result = sync_xp(user, 30, None, NOW)

        assert same is user
        assert result.xp == 50
        assert result.level == 1
        assert result.synced is True

    def test_equal_client_value_is_ignored(self):
        user = _user(120)
        same, _ = sync_xp(user, 120, 2, NOW)
        assert same is user

    def test_higher_client_value_wins(self):
        updated, result = sync_xp(_user(50), 250, None, NOW)

        assert updated.xp == 250
        assert updated.level == 3
        assert updated.last_xp_update == NOW
        assert result.xp == 250

    def test_matching_client_level_is_kept(self):
        updated, _ = sync_xp(_user(50), 250, 3, NOW)
        assert updated.level == 3

    def test_mismatched_client_level_is_recomputed(self):
        updated, result = sync_xp(_user(50), 250, 9, NOW)
        assert updated.level == 3
        assert result.level == 3

    @pytest.mark.parametrize("client_xp", [-1, "300", 10.5, None])
    def test_invalid_client_xp(self, client_xp):
        with pytest.raises(InvalidInput):
            sync_xp(_user(50), client_xp, None, NOW)

    def test_input_history_not_shared(self):
        user = _user(50).model_copy(update={"streak_history": [StreakEntry(date=NOW.date())]})
        updated, _ = sync_xp(user, 120, None, NOW)
        updated.streak_history.append(StreakEntry(date=NOW.date()))
        assert len(user.streak_history) == 1

    def test_never_decreases(self):
        user = _user(500)
        for client_xp in (0, 10, 499, 500, 620, 300, 700):
            previous = user.xp
            user, _ = sync_xp(user, client_xp, None, NOW)
            assert user.xp >= previous
            assert user.level == user.xp // 100 + 1
        assert user.xp == 700


class TestStatusAndAwards:
    def test_xp_status(self):
        user = User(user_id="u1", name="Asha", xp=250, level=3, last_xp_update=NOW)
        status = xp_status(user)

        assert status.xp_in_level == 50
        assert status.xp_for_next_level == 100
        assert status.last_update == NOW
        assert set(status.model_dump(by_alias=True)) == {
            "xp", "level", "xpInLevel", "xpForNextLevel", "lastUpdate",
        }

    def test_game_xp(self):
        assert game_xp(95) == 9
        assert game_xp(9) == 0
        assert game_xp(300, divisor=20) == 15

    def test_lesson_xp(self):
        assert lesson_xp(3) == 30
        assert lesson_xp(0) == 0
        assert lesson_xp(2, per_lesson=25) == 50
