from __future__ import annotations

import logging
from typing import List

from app.schemas.workspace import Notification

logger = logging.getLogger(__name__)


class NotificationFeed:
    """Non-blocking user notifications, drained by whoever renders them."""

    def __init__(self) -> None:
        self._pending: List[Notification] = []

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def _push(self, level: str, message: str) -> None:
        logger.debug("Notify [%s] %s", level, message)
        self._pending.append(Notification(level=level, message=message))

    def peek(self) -> List[Notification]:
        return list(self._pending)

    def drain(self) -> List[Notification]:
        pending, self._pending = self._pending, []
        return pending
