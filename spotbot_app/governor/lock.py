"""Exclusive file lock shared by every process pacing the same venue."""

import fcntl
from pathlib import Path
from typing import IO, Optional

from ..errors import GovernorStateError


class FileLock:
    """Blocking, exclusive ``flock`` on a lock file; use as a context manager."""

    def __init__(self, path: Path):
        self.path = path
        self._handle: Optional[IO[str]] = None

    def acquire(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+")
        except OSError as e:
            raise GovernorStateError(
                f"Cannot open lock file: {e}",
                operation="lock",
                target=str(self.path),
            ) from e
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            handle.close()
            raise GovernorStateError(
                f"Cannot lock: {e}",
                operation="lock",
                target=str(self.path),
            ) from e
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
