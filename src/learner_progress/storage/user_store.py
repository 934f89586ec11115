"""User document persistence (JSON + fcntl.flock + atomic write).

Every write is a compare-and-swap on ``User.revision``: the document is
saved only if the revision on disk still matches the one that was read.
"""

import fcntl
import json
import os
import re
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from learner_progress.errors import Conflict, InvalidInput, NotFound, StorageError
from learner_progress.models.user import User

logger = structlog.get_logger()

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def write_json_atomic(path: Path, data: Any, **dump_kwargs: Any) -> None:
    """Replace ``path`` with ``data`` via a hidden ``.tmp`` file in the same directory.

    The temp name never matches the ``*.json`` scans, and it is removed if
    the write fails.
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            json.dump(data, tmp, **dump_kwargs)
        os.replace(tmp_name, path)
    except BaseException:
        with suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def validate_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not _USER_ID_RE.match(user_id):
        raise InvalidInput("Invalid user ID format")
    return user_id


class UserStore:
    """One JSON document per user under ``<data_dir>/users``."""

    def __init__(self, data_dir: Path):
        self.users_dir = Path(data_dir) / "users"
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, user_id: str) -> Path:
        return self.users_dir / f"{validate_user_id(user_id)}.json"

    @contextmanager
    def _locked(self, user_id: str) -> Iterator[None]:
        lock_path = self.users_dir / f"{validate_user_id(user_id)}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _read(self, path: Path) -> User:
        try:
            with open(path, encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                data = json.load(f)
                fcntl.flock(f, fcntl.LOCK_UN)
            return User.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to read user document {path.name}", cause=str(e)) from e

    def _write(self, user: User) -> None:
        path = self._path(user.user_id)
        try:
            write_json_atomic(path, user.model_dump(mode="json"))
        except OSError as e:
            raise StorageError(f"Failed to write user document {path.name}", cause=str(e)) from e

    def exists(self, user_id: str) -> bool:
        return self._path(user_id).exists()

    def find_by_id(self, user_id: str) -> User:
        """Load a user.

        Raises:
            NotFound: No document for ``user_id``.
        """
        path = self._path(user_id)
        if not path.exists():
            raise NotFound("User not found", user_id=user_id)
        return self._read(path)

    def create(self, user: User) -> User:
        with self._locked(user.user_id):
            if self._path(user.user_id).exists():
                raise Conflict("User already exists", user_id=user.user_id)
            stored = user.model_copy(update={"revision": 1})
            self._write(stored)
        logger.info("user_created", user_id=user.user_id, role=user.role.value)
        return stored

    def save(self, user: User) -> User:
        """Write ``user`` if nobody else wrote it since it was read.

        Returns:
            The stored document with its revision bumped.

        Raises:
            NotFound: The document was deleted meanwhile.
            Conflict: The revision on disk differs from ``user.revision``.
        """
        with self._locked(user.user_id):
            path = self._path(user.user_id)
            if not path.exists():
                raise NotFound("User not found", user_id=user.user_id)
            current = self._read(path)
            if current.revision != user.revision:
                logger.warning(
                    "user_conflict",
                    user_id=user.user_id,
                    expected=user.revision,
                    actual=current.revision,
                )
                raise Conflict("User was modified concurrently, retry the request")
            stored = user.model_copy(update={"revision": user.revision + 1})
            self._write(stored)
        return stored

    def list_users(self) -> list[User]:
        users = []
        for path in sorted(self.users_dir.glob("*.json")):
            try:
                users.append(self._read(path))
            except StorageError:
                logger.warning("user_parse_error", path=str(path))
        return users
