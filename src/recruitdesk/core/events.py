from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from typing import Any

Event = dict[str, Any]


class EventBus:
    """In-process fan-out of events to async subscribers.

    Each subscriber owns an unbounded queue, so ``publish`` never waits on a
    slow reader. A subscriber is registered when its iterator first runs and
    removed when the iterator is closed.
    """

    def __init__(self) -> None:
        self._channels: dict[str, set[asyncio.Queue[Event]]] = defaultdict(set)

    async def publish(self, channel: str, event: Event) -> int:
        subscribers = tuple(self._channels.get(channel, ()))
        for queue in subscribers:
            queue.put_nowait(event)
        return len(subscribers)

    async def subscribe(self, channel: str) -> AsyncIterator[Event]:
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._channels[channel].add(queue)
        try:
            while True:
                yield await queue.get()
        finally:
            subscribers = self._channels.get(channel)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._channels[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._channels.get(channel, ()))
