"""
User notifications with level filtering.

Delivery (push, Telegram...) is an injected ``send(title, message)``
callable; without one, notifications are only logged.
"""

from enum import Enum, IntEnum
from typing import Any, Callable, Optional

from ..logging.config import get_logger

logger = get_logger(__name__)


class NotifyLevel(IntEnum):
    """How much the user wants to hear about."""
    NOTHING = 0
    ERRORS = 1
    DEFAULT = 2
    EVERYTHING = 3


class EventKind(str, Enum):
    """Kind of notification."""
    ERROR = "error"
    INFO = "info"
    FILLED = "filled"
    CANCELLED = "cancelled"
    OPENED = "opened"


_MIN_LEVEL = {
    EventKind.ERROR: NotifyLevel.ERRORS,
    EventKind.INFO: NotifyLevel.DEFAULT,
    EventKind.FILLED: NotifyLevel.DEFAULT,
    EventKind.CANCELLED: NotifyLevel.DEFAULT,
    EventKind.OPENED: NotifyLevel.EVERYTHING,
}


def can_send(level: int, kind: EventKind) -> bool:
    """Whether an event of ``kind`` passes the user's notification ``level``."""
    return int(level) >= _MIN_LEVEL[kind]


class Notifier:
    """Filters events by level and hands them to the delivery callable."""

    def __init__(
        self,
        send: Optional[Callable[[str, str], Any]] = None,
        level: int = NotifyLevel.DEFAULT,
        venue: Optional[str] = None,
    ):
        self.send = send
        self.level = NotifyLevel(level)
        self.venue = venue

    def notify(self, kind: EventKind, title: str, message: str) -> bool:
        """Send one event; returns False when it was filtered out."""
        if not can_send(self.level, kind):
            return False
        if self.venue:
            title = f"{self.venue} - {title}"
        if self.send is None:
            logger.info("Notification", kind=kind.value, title=title, message=message)
            return True
        try:
            self.send(title, message)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                kind=kind.value,
                title=title,
                error=str(e),
            )
            return False
        return True

    def error(self, error: BaseException, title: str = "Error") -> bool:
        return self.notify(EventKind.ERROR, title, str(error))
