"""
User-facing status notifications emitted at each import step boundary.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger("ddb-importer")


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class Notice:
    level: NoticeLevel
    message: str


class Notifier(ABC):
    """Sink for status messages (a UI toast area, a tool response, a log)."""

    @abstractmethod
    def notify(self, level: NoticeLevel, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        self.notify(NoticeLevel.INFO, message)

    def success(self, message: str) -> None:
        self.notify(NoticeLevel.SUCCESS, message)

    def error(self, message: str) -> None:
        self.notify(NoticeLevel.ERROR, message)


class LoggingNotifier(Notifier):

    def notify(self, level: NoticeLevel, message: str) -> None:
        if level is NoticeLevel.ERROR:
            logger.error(message)
        else:
            logger.info(message)


@dataclass
class CollectingNotifier(LoggingNotifier):
    """Logs and also keeps every notice, for returning them to a caller."""

    notices: list[Notice] = field(default_factory=list)

    def notify(self, level: NoticeLevel, message: str) -> None:
        super().notify(level, message)
        self.notices.append(Notice(level, message))

    @property
    def messages(self) -> list[str]:
        return [notice.message for notice in self.notices]

    def clear(self) -> None:
        self.notices.clear()
