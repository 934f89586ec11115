"""User document model: XP, level, streak and learner category."""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from learner_progress.models.base import CamelModel


class Role(StrEnum):
    """Account roles."""

    STUDENT = "student"
    TEACHER = "teacher"
    INSTITUTE = "institute"
    ADMIN = "admin"


class LearnerCategory(StrEnum):
    """Sticky learner classification label."""

    FAST = "fast"
    SLOW = "slow"
    NEUTRAL = "neutral"
    UNSET = "unset"


class StreakEntry(BaseModel):
    """One day of streak history."""

    date: date
    active: bool = True


class User(CamelModel):
    user_id: str
    name: str
    role: Role = Role.STUDENT
    created_at: datetime = Field(default_factory=datetime.now)

    # XP and level
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    last_xp_update: datetime | None = None

    # Streak tracking
    streak: int = Field(default=0, ge=0)
    last_active_date: date | None = None
    streak_history: list[StreakEntry] = Field(default_factory=list)

    learner_category: LearnerCategory = LearnerCategory.UNSET

    # Compare-and-swap token, bumped by the store on every write
    revision: int = Field(default=0, ge=0)
