from __future__ import annotations

import logging
from collections import deque

from recruitdesk.config import get_settings
from recruitdesk.core.events import EventBus
from recruitdesk.types import Notification, NotificationLevel

logger = logging.getLogger(__name__)

NOTIFICATIONS_CHANNEL = "notifications"


class Notifier:
    """User-facing toast messages.

    Every notification is appended to a bounded history and, when an event bus
    is attached, published on the ``notifications`` channel so a UI can stream
    them.
    """

    def __init__(self, event_bus: EventBus | None = None, *, history_limit: int | None = None):
        self.event_bus = event_bus
        limit = history_limit if history_limit is not None else get_settings().notify_history_limit
        self.history: deque[Notification] = deque(maxlen=limit)

    async def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level=level, message=message)
        self.history.append(notification)
        logger.debug("notify level=%s message=%s", level, message)
        if self.event_bus is not None:
            await self.event_bus.publish(NOTIFICATIONS_CHANNEL, notification.model_dump())
        return notification

    async def success(self, message: str) -> Notification:
        return await self.notify("success", message)

    async def info(self, message: str) -> Notification:
        return await self.notify("info", message)

    async def error(self, message: str) -> Notification:
        return await self.notify("error", message)

    def messages(self, level: NotificationLevel | None = None) -> list[str]:
        return [item.message for item in self.history if level is None or item.level == level]

    def clear(self) -> None:
        self.history.clear()
