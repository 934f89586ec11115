"""Result models returned by the streak, XP and classification operations."""

from datetime import date, datetime

from pydantic import Field

from learner_progress.models.base import CamelModel
from learner_progress.models.game import GameResult
from learner_progress.models.user import LearnerCategory, StreakEntry


class CheckInResult(CamelModel):
    streak: int
    message: str
    is_new_streak: bool
    already_checked_in: bool


class StreakStatus(CamelModel):
    streak: int
    last_active_date: date | None
    needs_checkin: bool
    streak_history: list[StreakEntry] = Field(default_factory=list)


class XPResult(CamelModel):
    xp: int
    level: int
    message: str


class XPSyncResult(CamelModel):
    xp: int
    level: int
    synced: bool = True


class XPStatus(CamelModel):
    xp: int
    level: int
    xp_in_level: int
    xp_for_next_level: int
    last_update: datetime | None


class ClassificationResult(CamelModel):
    category: LearnerCategory
    applied: bool
    previous: LearnerCategory


class GameRecordResult(CamelModel):
    result: GameResult
    xp_earned: int
    xp: int
    level: int
    learner_category: LearnerCategory
    classification: ClassificationResult


class OfflineSyncResult(CamelModel):
    message: str = "Sync successful"
    synced_count: int
    xp: int
    level: int


class LeaderboardEntry(CamelModel):
    user_id: str
    name: str
    xp: int
    level: int
    streak: int
    learner_category: LearnerCategory
