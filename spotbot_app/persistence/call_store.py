"""
Per-order persistence of submitted calls.

When a buy call carries its own stop or target price, the call is saved
under the venue order id so the sell engine can honour it once the order
fills, possibly in another process. One small JSON file per order.
"""

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from ..errors import PersistenceError
from ..logging.config import get_logger
from ..models.book import Call

logger = get_logger(__name__)


class CallStore:
    """JSON-file store of calls keyed by venue code and order id."""

    def __init__(self, venue_code: str, directory: Path):
        self.venue_code = venue_code.lower()
        self.directory = Path(directory) / "calls"

    def _path(self, order_id: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in str(order_id))
        return self.directory / f"{self.venue_code}-{safe}.json"

    def save(self, order_id: str, call: Call) -> Path:
        path = self._path(order_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(asdict(call)))
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(
                f"Failed to save call: {e}",
                operation="save",
                target=str(path),
            ) from e
        return path

    def load(self, order_id: str) -> Optional[Call]:
        """Saved call for ``order_id``, None when none was saved."""
        path = self._path(order_id)
        try:
            raw = path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(
                f"Failed to load call: {e}",
                operation="load",
                target=str(path),
            ) from e
        try:
            return Call(**json.loads(raw))
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Discarding unreadable call file", path=str(path), error=str(e))
            return None

    def discard(self, order_id: str) -> None:
        try:
            self._path(order_id).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise PersistenceError(
                f"Failed to discard call: {e}",
                operation="discard",
                target=str(self._path(order_id)),
            ) from e
