# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fire-and-forget status reports for the host UI.

emit() never raises and never waits on subscribers: a failing subscriber is
logged and skipped. Each event is mirrored to the ``mediasweep.status`` logger.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger("mediasweep.status")

HISTORY_SIZE = 200


class StatusLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS: dict[StatusLevel, int] = {
    StatusLevel.INFO: logging.INFO,
    StatusLevel.SUCCESS: logging.INFO,
    StatusLevel.WARNING: logging.WARNING,
    StatusLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class StatusEvent:
    message: str
    level: StatusLevel
    timestamp: float


Subscriber = Callable[[StatusEvent], object]


class StatusEmitter:
    """Broadcasts StatusEvents to subscribers and keeps a short history."""

    def __init__(self, history_size: int = HISTORY_SIZE) -> None:
        self._subscribers: list[Subscriber] = []
        self._history: deque[StatusEvent] = deque(maxlen=history_size)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def emit(self, message: str, level: StatusLevel | str = StatusLevel.INFO) -> StatusEvent:
        """Publish a status message. Never raises."""
        try:
            level = StatusLevel(level)
        except ValueError:
            level = StatusLevel.INFO
        event = StatusEvent(message=message, level=level, timestamp=time.time())
        self._history.append(event)
        logger.log(_LOG_LEVELS[level], message)

        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.debug("Status subscriber failed: %r", callback, exc_info=True)
        return event

    @property
    def history(self) -> list[StatusEvent]:
        return list(self._history)

    @property
    def last(self) -> StatusEvent | None:
        return self._history[-1] if self._history else None
