"""
Notification sink - operator-facing messages.

Notifying is fire-and-forget: a sink that fails is logged and skipped, the
register command that produced the message carries on.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class NotificationLevel(str, enum.Enum):
    INFO = 'info'
    SUCCESS = 'success'
    WARNING = 'warning'
    ERROR = 'error'


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {'level': self.level.value, 'message': self.message}


class LoggingNotifier:
    """Writes notifications to the application log."""

    def __init__(self, logger_name: str = 'pos_register.notifications'):
        self.logger = logging.getLogger(logger_name)

    def notify(self, level, message: str) -> None:
        level = NotificationLevel(level)
        self.logger.log(_LOG_LEVELS[level], f"[NOTIFY] {level.value}: {message}")


class NotificationQueue:
    """Keeps notifications until drained (one HTTP response, one test assertion)."""

    def __init__(self):
        self._items: List[Notification] = []

    def notify(self, level, message: str) -> None:
        self._items.append(Notification(NotificationLevel(level), message))

    def drain(self) -> List[Notification]:
        items, self._items = self._items, []
        return items

    def peek(self) -> List[Notification]:
        return list(self._items)

    def messages(self, level=None) -> List[str]:
        """Pending messages, optionally filtered by level."""
        return [
            n.message for n in self._items
            if level is None or n.level == NotificationLevel(level)
        ]

    def __len__(self) -> int:
        return len(self._items)


class CompositeNotifier:
    """Fans a notification out to several sinks."""

    def __init__(self, *sinks):
        self.sinks = list(sinks)

    def notify(self, level, message: str) -> None:
        for sink in self.sinks:
            try:
                sink.notify(level, message)
            except Exception:
                logger.exception(f"[NOTIFY] Sink {sink.__class__.__name__} failed")
