"""Game result history persistence, one append-only file per user."""

import fcntl
import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from learner_progress.errors import StorageError
from learner_progress.models.game import GameResult, HighscoreEntry
from learner_progress.storage.user_store import validate_user_id, write_json_atomic

logger = structlog.get_logger()


class GameResultStore:
    def __init__(self, data_dir: Path):
        self.results_dir = Path(data_dir) / "game_results"
        self.results_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self.results_dir / f"{validate_user_id(user_id)}.json"

    def _load(self, path: Path) -> dict:
        if not path.exists():
            return {"results": []}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read game results {path.name}", cause=str(e)) from e
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise StorageError(f"Malformed game results {path.name}")
        return data

    def append(self, user_id: str, results: list[GameResult]) -> None:
        """Append results to the user's history."""
        if not results:
            return
        path = self._path(user_id)
        lock_path = self.results_dir / (path.name + ".lock")
        try:
            with open(lock_path, "w") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)

                data = self._load(path)
                data["results"].extend(r.model_dump(mode="json") for r in results)
                write_json_atomic(path, data, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to write game results {path.name}", cause=str(e)) from e

    def history(self, user_id: str, limit: int | None = None) -> list[GameResult]:
        """Results oldest first; ``limit`` keeps only the most recent ones."""
        raw = self._load(self._path(user_id))["results"]
        if limit is not None:
            raw = raw[-limit:] if limit > 0 else []
        try:
            return [GameResult.model_validate(r) for r in raw]
        except ValidationError as e:
            raise StorageError("Corrupt game result history", user_id=user_id) from e

    def latest(self, user_id: str) -> GameResult | None:
        results = self.history(user_id, limit=1)
        return results[0] if results else None

    def highscores(self, limit: int = 10) -> list[HighscoreEntry]:
        """Best single results across all users."""
        entries = []
        for path in sorted(self.results_dir.glob("*.json")):
            try:
                raw_results = self._load(path)["results"]
            except StorageError:
                logger.warning("game_results_parse_error", path=str(path))
                continue
            for raw in raw_results:
                try:
                    entries.append(HighscoreEntry.model_validate({**raw, "user_id": path.stem}))
                except (TypeError, ValidationError):
                    logger.warning("game_result_parse_error", path=str(path))
        entries.sort(key=lambda e: e.score, reverse=True)
        return entries[:limit]
