"""Daily check-in streak engine.

Pure functions over a ``User``: each call returns a new user copy plus a
result, and the caller persists the copy. Day boundaries come from the
policy's explicit timezone, never the host default.

Transitions for a check-in on ``today`` given the last active day:

- no previous check-in: streak starts at 1
- same day: no change, reported as already checked in
- next day: streak + 1
- gap of two or more days: streak resets to 1
- earlier day (clock skew): per ``backdated_checkin`` policy
"""

from datetime import datetime
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from learner_progress.engine.clock import days_between, to_day
from learner_progress.errors import InvalidInput
from learner_progress.models.progress import CheckInResult, StreakStatus
from learner_progress.models.user import StreakEntry, User

logger = structlog.get_logger()

ALREADY_CHECKED_IN = "Already checked in today"


class StreakPolicy(BaseModel):
    timezone: str = "UTC"
    history_limit: int = Field(default=30, ge=1)
    status_window: int = Field(default=7, ge=1)
    backdated_checkin: Literal["reject", "ignore", "reset"] = "reject"

    @classmethod
    def from_settings(cls, settings) -> "StreakPolicy":
        return cls(
            timezone=settings.timezone,
            history_limit=settings.streak_history_limit,
            status_window=settings.streak_status_window,
            backdated_checkin=settings.backdated_checkin,
        )


def _unchanged(user: User) -> tuple[User, CheckInResult]:
    return user, CheckInResult(
        streak=user.streak,
        message=ALREADY_CHECKED_IN,
        is_new_streak=False,
        already_checked_in=True,
    )


def check_in(
    user: User,
    now: datetime,
    policy: StreakPolicy | None = None,
) -> tuple[User, CheckInResult]:
    """Record a check-in for ``now``.

    Args:
        user: Current user document; not modified.
        now: Moment of the check-in.
        policy: Day-boundary and history settings.

    Returns:
        (updated user copy, check-in result). On a same-day check-in the
        original user is returned untouched.

    Raises:
        InvalidInput: ``now`` falls before the last active day and the
            policy is ``reject``.
    """
    policy = policy or StreakPolicy()
    today = to_day(now, policy.timezone)
    last = user.last_active_date

    if last is None:
        streak = 1
    else:
        delta = days_between(last, today)
        if delta == 0:
            return _unchanged(user)
        if delta == 1:
            streak = user.streak + 1
        elif delta > 1:
            streak = 1
        elif policy.backdated_checkin == "reject":
            raise InvalidInput(
                "Check-in date is before the last active date",
                user_id=user.user_id,
                today=today.isoformat(),
                last_active_date=last.isoformat(),
            )
        elif policy.backdated_checkin == "ignore":
            logger.warning("backdated_checkin_ignored", user_id=user.user_id, days=delta)
            return _unchanged(user)
        else:
            streak = 1

    history = [*user.streak_history, StreakEntry(date=today, active=True)]
    if len(history) > policy.history_limit:
        history = history[-policy.history_limit:]

    updated = user.model_copy(
        update={"streak": streak, "last_active_date": today, "streak_history": history},
        deep=True,
    )
    return updated, CheckInResult(
        streak=streak,
        message=f"Streak updated to {streak} days!",
        is_new_streak=streak == 1,
        already_checked_in=False,
    )


def status(user: User, now: datetime, policy: StreakPolicy | None = None) -> StreakStatus:
    """Read-only view of whether the user still needs to check in today."""
    policy = policy or StreakPolicy()
    last = user.last_active_date
    needs_checkin = last is None or days_between(last, to_day(now, policy.timezone)) > 0
    return StreakStatus(
        streak=user.streak,
        last_active_date=last,
        needs_checkin=needs_checkin,
        streak_history=user.streak_history[-policy.status_window:],
    )
