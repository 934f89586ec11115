"""REST API routes for streaks, XP, game results and rankings."""

import functools
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import Field, StrictFloat, StrictInt

from learner_progress.config import get_settings, load_classifier_thresholds
from learner_progress.engine.clock import SystemClock
from learner_progress.errors import ProgressError
from learner_progress.models.base import CamelModel
from learner_progress.models.game import GameResult, HighscoreEntry
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
from learner_progress.services.progress import ProgressService
from learner_progress.storage.game_results import GameResultStore
from learner_progress.storage.user_store import UserStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class CreateUserRequest(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    role: Role = Role.STUDENT
    user_id: str | None = None


class AddXPRequest(CamelModel):
    amount: StrictInt | StrictFloat
    source: str | None = None


class SyncXPRequest(CamelModel):
    xp: StrictInt | StrictFloat
    level: StrictInt | None = None


class OfflineSyncRequest(CamelModel):
    game_results: list[GameResult] = Field(default_factory=list)
    completed_lessons: list[str] = Field(default_factory=list)


@functools.lru_cache
def get_service() -> ProgressService:
    """Build the progress service from application settings."""
    settings = get_settings()
    return ProgressService(
        users=UserStore(settings.storage_dir),
        games=GameResultStore(settings.storage_dir),
        clock=SystemClock(settings.timezone),
        settings=settings,
        thresholds=load_classifier_thresholds(),
    )


@contextmanager
def handle_errors(operation: str) -> Iterator[None]:
    """Translate service errors into HTTP responses.

    Caller-fault errors keep their message; anything else is logged and
    reported generically.
    """
    try:
        yield
    except ProgressError as e:
        if e.public:
            raise HTTPException(status_code=e.status_code, detail=e.message) from e
        logger.error("operation_failed", operation=operation, error=e.message, **e.context)
        raise HTTPException(status_code=500, detail="Internal server error") from e
    except Exception as e:
        logger.exception("operation_crashed", operation=operation)
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/users", status_code=201)
def create_user(body: CreateUserRequest) -> User:
    with handle_errors("create_user"):
        return get_service().create_user(body.name, body.role, body.user_id)


@router.get("/users/{user_id}")
def get_user(user_id: str) -> User:
    with handle_errors("get_user"):
        return get_service().get_user(user_id)


@router.post("/users/{user_id}/streak/checkin")
def daily_checkin(user_id: str) -> CheckInResult:
    """Record today's check-in."""
    with handle_errors("checkin"):
        return get_service().check_in(user_id)


@router.get("/users/{user_id}/streak/status")
def streak_status(user_id: str) -> StreakStatus:
    with handle_errors("streak_status"):
        return get_service().streak_status(user_id)


@router.post("/users/{user_id}/xp/add")
def add_xp(user_id: str, body: AddXPRequest) -> XPResult:
    with handle_errors("add_xp"):
        return get_service().add_xp(user_id, body.amount, body.source)


@router.put("/users/{user_id}/xp/sync")
def sync_xp(user_id: str, body: SyncXPRequest) -> XPSyncResult:
    """Reconcile XP earned offline (server keeps the larger total)."""
    with handle_errors("sync_xp"):
        return get_service().sync_xp(user_id, body.xp, body.level)


@router.get("/users/{user_id}/xp/status")
def xp_status(user_id: str) -> XPStatus:
    with handle_errors("xp_status"):
        return get_service().xp_status(user_id)


@router.post("/users/{user_id}/games/result", status_code=201)
def save_game_result(user_id: str, body: GameResult) -> GameRecordResult:
    with handle_errors("save_game_result"):
        return get_service().record_game_result(user_id, body)


@router.post("/users/{user_id}/classify")
def classify_learner(user_id: str) -> ClassificationResult:
    """Reclassify the learner from their most recent game."""
    with handle_errors("classify"):
        return get_service().classify_latest(user_id)


@router.post("/users/{user_id}/sync")
def sync_offline(user_id: str, body: OfflineSyncRequest) -> OfflineSyncResult:
    with handle_errors("sync_offline"):
        return get_service().sync_offline(user_id, body.game_results, body.completed_lessons)


@router.get("/leaderboard")
def leaderboard(limit: int | None = Query(default=None, ge=1, le=500)) -> list[LeaderboardEntry]:
    with handle_errors("leaderboard"):
        return get_service().leaderboard(limit)


@router.get("/games/highscores")
def highscores(limit: int = Query(default=10, ge=1, le=100)) -> list[HighscoreEntry]:
    with handle_errors("highscores"):
        return get_service().highscores(limit)


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
