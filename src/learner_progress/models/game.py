"""Game outcome models consumed by the learner classifier."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from learner_progress.models.base import CamelModel


class Difficulty(StrEnum):
    """Game difficulty tiers."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GameResult(CamelModel):
    """A single finished game.

    ``accuracy`` is a fraction in [0, 1]; percentages are accepted and
    normalised. ``duration`` is in seconds.
    """

    game_type: str = "generic"
    score: float = Field(ge=0)
    max_score: float = Field(default=100.0, gt=0)
    accuracy: float = Field(default=0.0, ge=0, le=1)
    duration: float = Field(default=0.0, ge=0)
    completed_level: bool = True
    difficulty: Difficulty = Difficulty.MEDIUM
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("accuracy", mode="before")
    @classmethod
    def _percent_to_fraction(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool) and 1 < value <= 100:
            return value / 100
        return value

    @property
    def score_ratio(self) -> float:
        return min(1.0, self.score / self.max_score)


class UserStats(BaseModel):
    """Aggregate progress figures the classifier weighs alongside a game."""

    xp: int = 0
    level: int = 1
    streak: int = 0


class HighscoreEntry(GameResult):
    user_id: str
    name: str | None = None
