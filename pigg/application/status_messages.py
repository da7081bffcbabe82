# pigg/application/status_messages.py
import heapq
import itertools
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)


class StatusLevel(IntEnum):
    INFO = 0
    WARNING = 1
    ERROR = 2


@dataclass(frozen=True)
class StatusMessage:
    level: StatusLevel
    text: str
    details: str = ""

    @classmethod
    def info(cls, text: str) -> "StatusMessage":
        return cls(StatusLevel.INFO, text)

    @classmethod
    def warning(cls, text: str) -> "StatusMessage":
        return cls(StatusLevel.WARNING, text)

    @classmethod
    def error(cls, text: str, details: str = "") -> "StatusMessage":
        return cls(StatusLevel.ERROR, text, details)


class StatusMessageQueue:
    """Messages waiting to be shown in the status bar, one at a time.

    Errors are shown before warnings, warnings before info. Messages of the
    same level are shown in the order they were added. Clearing the current
    message brings up the next one.
    """

    def __init__(self):
        self.current_message: Optional[StatusMessage] = None
        self._queue: List[Tuple[int, int, StatusMessage]] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._queue)

    def add_message(self, message: StatusMessage) -> None:
        logger.debug("Status %s: %s", message.level.name, message.text)
        if self.current_message is None:
            self.current_message = message
            return
        heapq.heappush(self._queue, (-message.level, next(self._counter), message))

    def clear_message(self) -> None:
        if self._queue:
            _, _, self.current_message = heapq.heappop(self._queue)
        else:
            self.current_message = None

    def showing_info_message(self) -> bool:
        return self.current_message is not None and self.current_message.level == StatusLevel.INFO
