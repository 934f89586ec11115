"""Rule-based learner classifier.

Each signal taken from the latest game votes ``fast`` or ``slow``; a label
is only produced when enough votes agree and none disagree. Everything else
is ``neutral``, which callers treat as "keep the current label".
"""

import structlog
from pydantic import BaseModel, Field

from learner_progress.models.game import Difficulty, GameResult, UserStats
from learner_progress.models.progress import ClassificationResult
from learner_progress.models.user import LearnerCategory, User

logger = structlog.get_logger()


class ClassifierThresholds(BaseModel):
    """Tunable cut-offs; defaults mirror config/classifier.yaml."""

    fast_accuracy: float = Field(default=0.85, ge=0, le=1)
    slow_accuracy: float = Field(default=0.5, ge=0, le=1)
    fast_score_ratio: float = Field(default=0.8, ge=0, le=1)
    slow_score_ratio: float = Field(default=0.4, ge=0, le=1)
    # Seconds per game at or under which pace counts as fast / at or over as slow
    fast_pace: dict[Difficulty, float] = Field(
        default_factory=lambda: {
            Difficulty.EASY: 60.0,
            Difficulty.MEDIUM: 90.0,
            Difficulty.HARD: 150.0,
        }
    )
    slow_pace: dict[Difficulty, float] = Field(
        default_factory=lambda: {
            Difficulty.EASY: 180.0,
            Difficulty.MEDIUM: 240.0,
            Difficulty.HARD: 360.0,
        }
    )
    min_votes: int = Field(default=2, ge=1)
    # New users get one extra slow vote of benefit of the doubt
    novice_max_level: int = Field(default=1, ge=0)
    novice_streak_days: int = Field(default=3, ge=0)


def _votes(game: GameResult, t: ClassifierThresholds) -> tuple[int, int]:
    fast = slow = 0

    if game.accuracy >= t.fast_accuracy:
        fast += 1
    elif game.accuracy <= t.slow_accuracy:
        slow += 1

    ratio = game.score_ratio
    if ratio >= t.fast_score_ratio:
        fast += 1
    elif ratio <= t.slow_score_ratio:
        slow += 1

    # A zero duration means the client did not time the game
    if game.duration > 0:
        fast_limit = t.fast_pace.get(game.difficulty)
        slow_limit = t.slow_pace.get(game.difficulty)
        if fast_limit is not None and game.duration <= fast_limit:
            fast += 1
        elif slow_limit is not None and game.duration >= slow_limit:
            slow += 1

    if not game.completed_level:
        slow += 1

    return fast, slow


def classify(
    game: GameResult,
    stats: UserStats,
    thresholds: ClassifierThresholds | None = None,
) -> LearnerCategory:
    """Classify a learner from their latest game and aggregate progress.

    Args:
        game: Most recent game outcome.
        stats: The learner's XP, level and streak.
        thresholds: Cut-offs to apply.

    Returns:
        FAST, SLOW or NEUTRAL.
    """
    t = thresholds or ClassifierThresholds()
    fast, slow = _votes(game, t)

    slow_needed = t.min_votes
    if stats.level <= t.novice_max_level and stats.streak < t.novice_streak_days:
        slow_needed += 1

    if game.completed_level and fast >= t.min_votes and slow == 0:
        category = LearnerCategory.FAST
    elif slow >= slow_needed and fast == 0:
        category = LearnerCategory.SLOW
    else:
        category = LearnerCategory.NEUTRAL

    logger.debug(
        "learner_classified",
        fast_votes=fast,
        slow_votes=slow,
        slow_needed=slow_needed,
        category=category.value,
    )
    return category


def apply_classification(
    user: User, category: LearnerCategory
) -> tuple[User, ClassificationResult]:
    """Store ``category`` on the user unless it is neutral."""
    previous = user.learner_category
    if category in (LearnerCategory.NEUTRAL, LearnerCategory.UNSET):
        return user, ClassificationResult(category=category, applied=False, previous=previous)

    updated = user.model_copy(update={"learner_category": category}, deep=True)
    return updated, ClassificationResult(category=category, applied=True, previous=previous)
