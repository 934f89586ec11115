"""XP accumulation and fixed-band levelling."""

from datetime import datetime

import structlog

from learner_progress.errors import InvalidInput
from learner_progress.models.progress import XPResult, XPStatus, XPSyncResult
from learner_progress.models.user import User

logger = structlog.get_logger()

XP_PER_LEVEL = 100


def level_for_xp(xp: int) -> int:
    """Level derived from total XP: 0-99 is level 1, 100-199 level 2, ..."""
    return xp // XP_PER_LEVEL + 1


def _require_int(value, name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInput(f"Invalid {name}: must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInput(f"Invalid {name}: must be a whole number")
        value = int(value)
    if value < minimum:
        raise InvalidInput(f"Invalid {name}: must be at least {minimum}")
    return value


def add_xp(
    user: User,
    amount,
    source: str | None,
    now: datetime,
) -> tuple[User, XPResult]:
    """Award ``amount`` XP.

    Raises:
        InvalidInput: ``amount`` is not a positive whole number.
    """
    amount = _require_int(amount, "XP amount", 1)
    xp = user.xp + amount
    updated = user.model_copy(
        update={"xp": xp, "level": level_for_xp(xp), "last_xp_update": now},
        deep=True,
    )
    return updated, XPResult(
        xp=updated.xp,
        level=updated.level,
        message=f"Added {amount} XP from {source or 'activity'}",
    )


def sync_xp(
    user: User,
    client_xp,
    client_level: int | None,
    now: datetime,
) -> tuple[User, XPSyncResult]:
    """Merge XP earned offline by taking the larger of client and server totals.

    The client value is trusted without verification. A client level is
    used only when it matches the level its XP implies.
    """
    client_xp = _require_int(client_xp, "client XP", 0)
    if client_xp <= user.xp:
        logger.debug("xp_sync_ignored", user_id=user.user_id, server_xp=user.xp, client_xp=client_xp)
        return user, XPSyncResult(xp=user.xp, level=user.level)

    level = level_for_xp(client_xp)
    if client_level is not None and client_level != level:
        logger.warning(
            "xp_sync_level_mismatch",
            user_id=user.user_id,
            client_xp=client_xp,
            client_level=client_level,
            derived_level=level,
        )
    updated = user.model_copy(
        update={"xp": client_xp, "level": level, "last_xp_update": now},
        deep=True,
    )
    return updated, XPSyncResult(xp=updated.xp, level=updated.level)


def xp_status(user: User) -> XPStatus:
    return XPStatus(
        xp=user.xp,
        level=user.level,
        xp_in_level=user.xp % XP_PER_LEVEL,
        xp_for_next_level=XP_PER_LEVEL,
        last_update=user.last_xp_update,
    )


def game_xp(score: float, divisor: int = 10) -> int:
    """XP earned for a finished game."""
    return int(score // divisor)


def lesson_xp(count: int, per_lesson: int = 10) -> int:
    return count * per_lesson
