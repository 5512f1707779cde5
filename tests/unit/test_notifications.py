from __future__ import annotations

import asyncio

from recruitdesk.core.events import EventBus
from recruitdesk.core.notifications import NOTIFICATIONS_CHANNEL, Notifier


def test_history_is_bounded_and_filterable() -> None:
    notifier = Notifier(history_limit=2)

    async def scenario():
        await notifier.info("first")
        await notifier.error("second")
        await notifier.success("third")

    asyncio.run(scenario())
    assert notifier.messages() == ["second", "third"]
    assert notifier.messages("error") == ["second"]
    notifier.clear()
    assert notifier.messages() == []


def test_notifications_are_published_on_the_bus() -> None:
    bus = EventBus()
    notifier = Notifier(bus, history_limit=10)

    async def scenario():
        stream = bus.subscribe(NOTIFICATIONS_CHANNEL)
        receiver = asyncio.create_task(stream.__anext__())
        await asyncio.sleep(0)
        assert bus.subscriber_count(NOTIFICATIONS_CHANNEL) == 1
        await notifier.error("Failed to load states")
        event = await receiver
        await stream.aclose()
        return event

    event = asyncio.run(scenario())
    assert event == {"level": "error", "message": "Failed to load states"}
    assert bus.subscriber_count(NOTIFICATIONS_CHANNEL) == 0
