"""
Durable per-venue rate-limit state.

Three files per venue live in a shared session directory under the system
temp dir:

- ``<venue>.time``: last request time, RFC3339 UTC with milliseconds
- ``<venue>.json``: ``{"cooldown": bool, "calls": [{"path", "intensity"}]}``
- ``<venue>.lock``: exclusive lock, never holds data

Readers and writers must hold the venue lock (see :meth:`SessionStore.lock`).
"""

import json
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..errors import GovernorStateError
from ..utils.time import format_session_time, parse_session_time
from .lock import FileLock

DEFAULT_SESSION_DIR_NAME = "com.spotbot.session"


def session_dir(name: str = DEFAULT_SESSION_DIR_NAME) -> Path:
    """Shared session directory, created on demand."""
    path = Path(tempfile.gettempdir()) / name
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class RateLimitInfo:
    """Structured rate-limit blob for venues with cooldowns or path intensities."""
    cooldown: bool = False
    calls: dict[str, int] = field(default_factory=dict)   # path -> intensity

    def intensity(self, path: str) -> Optional[int]:
        return self.calls.get(path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cooldown": self.cooldown,
            "calls": [
                {"path": path, "intensity": intensity}
                for path, intensity in sorted(self.calls.items())
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateLimitInfo":
        calls = {}
        for call in data.get("calls") or []:
            try:
                calls[str(call["path"])] = int(call["intensity"])
            except (KeyError, TypeError, ValueError):
                continue
        return cls(cooldown=bool(data.get("cooldown", False)), calls=calls)


class SessionStore:
    """File-backed rate-limit state for one venue."""

    def __init__(self, venue_code: str, directory: Optional[Path] = None):
        self.venue_code = venue_code.lower()
        self.directory = Path(directory) if directory is not None else session_dir()

    @property
    def time_file(self) -> Path:
        return self.directory / f"{self.venue_code}.time"

    @property
    def info_file(self) -> Path:
        return self.directory / f"{self.venue_code}.json"

    @property
    def lock_file(self) -> Path:
        return self.directory / f"{self.venue_code}.lock"

    def lock(self) -> FileLock:
        return FileLock(self.lock_file)

    def read_last_request(self) -> Optional[datetime]:
        """Last persisted request time, None when no process has written one."""
        try:
            raw = self.time_file.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise GovernorStateError(
                f"Cannot read last request time: {e}",
                operation="read",
                target=str(self.time_file),
            ) from e
        return parse_session_time(raw)

    def write_last_request(self, ts: datetime) -> datetime:
        """
        Persist ``ts`` unless a later time is already on disk.

        Returns:
            The timestamp that is on disk afterwards
        """
        current = self.read_last_request()
        if current is not None and current >= ts:
            return current
        self._write(self.time_file, format_session_time(ts))
        return ts

    def read_info(self) -> RateLimitInfo:
        try:
            raw = self.info_file.read_text()
        except FileNotFoundError:
            return RateLimitInfo()
        except OSError as e:
            raise GovernorStateError(
                f"Cannot read rate-limit state: {e}",
                operation="read",
                target=str(self.info_file),
            ) from e
        if not raw.strip():
            return RateLimitInfo()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            # torn write from a killed process; start over
            return RateLimitInfo()
        return RateLimitInfo.from_dict(data)

    def write_info(self, info: RateLimitInfo) -> None:
        self._write(self.info_file, json.dumps(info.to_dict()))

    def _write(self, path: Path, content: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{path.name}.")
            with os.fdopen(fd, "w") as f:
                f.write(content)
            os.replace(tmp, path)
        except OSError as e:
            raise GovernorStateError(
                f"Cannot write session file: {e}",
                operation="write",
                target=str(path),
            ) from e
