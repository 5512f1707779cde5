from __future__ import annotations

from recruitdesk.core.events import EventBus
from recruitdesk.core.notifications import Notifier

_EVENT_BUS: EventBus | None = None
_NOTIFIER: Notifier | None = None


def get_event_bus() -> EventBus:
    global _EVENT_BUS
    if _EVENT_BUS is None:
        _EVENT_BUS = EventBus()
    return _EVENT_BUS


def get_notifier() -> Notifier:
    global _NOTIFIER
    if _NOTIFIER is None:
        _NOTIFIER = Notifier(get_event_bus())
    return _NOTIFIER
