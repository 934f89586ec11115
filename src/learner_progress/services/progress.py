"""Progress service: load a user, run a pure engine, persist once."""

import uuid

import structlog

from learner_progress.config import Settings
from learner_progress.engine import streak as streak_engine
from learner_progress.engine import xp as xp_engine
from learner_progress.engine.classifier import (
    ClassifierThresholds,
    apply_classification,
    classify,
)
from learner_progress.engine.clock import Clock
from learner_progress.engine.streak import StreakPolicy
from learner_progress.errors import NotFound
from learner_progress.models.game import GameResult, HighscoreEntry, UserStats
from learner_progress.models.progress import (
    CheckInResult,
    ClassificationResult,
    GameRecordResult,
    LeaderboardEntry,
    OfflineSyncResult,
    StreakStatus,
    XPResult,
    XPStatus,
    XPSyncResult,
)
from learner_progress.models.user import Role, User
from learner_progress.storage.game_results import GameResultStore
from learner_progress.storage.user_store import UserStore

logger = structlog.get_logger()


class ProgressService:
    """Coordinates the streak, XP and classification engines over storage.

    Every mutating operation reads one user document, computes the new
    document in memory and writes it back with a single compare-and-swap.

    Args:
        users: User document store.
        games: Game result history store.
        clock: Source of "now".
        settings: Application settings (XP awards, streak policy).
        thresholds: Learner classifier cut-offs.
    """

    def __init__(
        self,
        users: UserStore,
        games: GameResultStore,
        clock: Clock,
        settings: Settings,
        thresholds: ClassifierThresholds | None = None,
    ):
        self.users = users
        self.games = games
        self.clock = clock
        self.settings = settings
        self.policy = StreakPolicy.from_settings(settings)
        self.thresholds = thresholds or ClassifierThresholds()

    # Users

    def create_user(self, name: str, role: Role = Role.STUDENT, user_id: str | None = None) -> User:
        user = User(
            user_id=user_id or uuid.uuid4().hex,
            name=name,
            role=role,
            created_at=self.clock.now(),
        )
        return self.users.create(user)

    def get_user(self, user_id: str) -> User:
        return self.users.find_by_id(user_id)

    # Streak

    def check_in(self, user_id: str) -> CheckInResult:
        user = self.users.find_by_id(user_id)
        updated, result = streak_engine.check_in(user, self.clock.now(), self.policy)
        if result.already_checked_in:
            return result
        self.users.save(updated)
        logger.info(
            "streak_checked_in",
            user_id=user_id,
            old_streak=user.streak,
            streak=result.streak,
        )
        return result

    def streak_status(self, user_id: str) -> StreakStatus:
        user = self.users.find_by_id(user_id)
        return streak_engine.status(user, self.clock.now(), self.policy)

    # XP

    def add_xp(self, user_id: str, amount, source: str | None = None) -> XPResult:
        user = self.users.find_by_id(user_id)
        updated, result = xp_engine.add_xp(user, amount, source, self.clock.now())
        self.users.save(updated)
        logger.info("xp_added", user_id=user_id, amount=updated.xp - user.xp, source=source)
        if updated.level > user.level:
            logger.info("level_up", user_id=user_id, old_level=user.level, level=updated.level)
        return result

    def sync_xp(self, user_id: str, client_xp, client_level: int | None = None) -> XPSyncResult:
        user = self.users.find_by_id(user_id)
        updated, result = xp_engine.sync_xp(user, client_xp, client_level, self.clock.now())
        if updated is not user:
            self.users.save(updated)
            logger.info("xp_synced", user_id=user_id, old_xp=user.xp, xp=updated.xp)
        return result

    def xp_status(self, user_id: str) -> XPStatus:
        return xp_engine.xp_status(self.users.find_by_id(user_id))

    # Games and classification

    def _classify(self, user: User, game: GameResult) -> tuple[User, ClassificationResult]:
        stats = UserStats(xp=user.xp, level=user.level, streak=user.streak)
        category = classify(game, stats, self.thresholds)
        updated, result = apply_classification(user, category)
        if result.applied and result.previous != result.category:
            logger.info(
                "learner_category_changed",
                user_id=user.user_id,
                previous=result.previous.value,
                category=result.category.value,
            )
        return updated, result

    def record_game_result(self, user_id: str, game: GameResult) -> GameRecordResult:
        """Store a finished game, award its XP and reclassify the learner."""
        user = self.users.find_by_id(user_id)
        updated = user
        earned = xp_engine.game_xp(game.score, self.settings.game_xp_divisor)
        if earned > 0:
            updated, _ = xp_engine.add_xp(updated, earned, game.game_type, self.clock.now())
        updated, classification = self._classify(updated, game)

        if updated is not user:
            self.users.save(updated)
        self.games.append(user_id, [game])
        logger.info("game_recorded", user_id=user_id, game_type=game.game_type, xp_earned=earned)
        return GameRecordResult(
            result=game,
            xp_earned=earned,
            xp=updated.xp,
            level=updated.level,
            learner_category=updated.learner_category,
            classification=classification,
        )

    def classify_latest(self, user_id: str) -> ClassificationResult:
        """Reclassify from the most recent stored game result."""
        user = self.users.find_by_id(user_id)
        game = self.games.latest(user_id)
        if game is None:
            raise NotFound("No game results for user", user_id=user_id)
        updated, result = self._classify(user, game)
        if updated is not user:
            self.users.save(updated)
        return result

    def sync_offline(
        self,
        user_id: str,
        game_results: list[GameResult],
        completed_lessons: list[str],
    ) -> OfflineSyncResult:
        """Apply progress recorded while the client was offline.

        Game results are stored as history only; completed lessons award
        the per-lesson XP.
        """
        user = self.users.find_by_id(user_id)
        updated = user
        earned = xp_engine.lesson_xp(len(completed_lessons), self.settings.lesson_xp)
        if earned > 0:
            updated, _ = xp_engine.add_xp(updated, earned, "offline lessons", self.clock.now())
            self.users.save(updated)
        self.games.append(user_id, game_results)

        synced = len(game_results) + len(completed_lessons)
        logger.info("offline_synced", user_id=user_id, synced_count=synced, xp_earned=earned)
        return OfflineSyncResult(synced_count=synced, xp=updated.xp, level=updated.level)

    # Rankings

    def leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]:
        limit = limit or self.settings.leaderboard_limit
        students = [u for u in self.users.list_users() if u.role == Role.STUDENT]
        students.sort(key=lambda u: u.xp, reverse=True)
        return [
            LeaderboardEntry(
                user_id=u.user_id,
                name=u.name,
                xp=u.xp,
                level=u.level,
                streak=u.streak,
                learner_category=u.learner_category,
            )
            for u in students[:limit]
        ]

    def highscores(self, limit: int = 10) -> list[HighscoreEntry]:
        """Top game results, labelled with the player's name when the user still exists."""
        entries = self.games.highscores(limit)
        names = {u.user_id: u.name for u in self.users.list_users()}
        return [e.model_copy(update={"name": names.get(e.user_id)}) for e in entries]
