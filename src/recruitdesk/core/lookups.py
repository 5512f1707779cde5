from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.core.notifications import Notifier
from recruitdesk.types import LookupOption

logger = logging.getLogger(__name__)

EMPTY: tuple[LookupOption, ...] = ()

CATEGORY_LABELS = {
    "states": "states",
    "cities": "cities",
    "localities": "localities",
    "qualifications": "qualifications",
    "jobProfiles": "job profiles",
}


class LookupSource(Protocol):
    async def fetch_lookup(self, category: str, parent_key: str | None = None) -> list[LookupOption]: ...


def cache_key(category: str, parent_key: str | None = None) -> str:
    if parent_key:
        return f"{category}:{parent_key}"
    return category


class LookupCache:
    """Session-scoped store of reference option lists.

    ``get`` is a synchronous snapshot that never blocks; ``load`` fetches at
    most once per composite key and shares the in-flight task between
    concurrent callers. A failed key stays empty until it is loaded again with
    ``refresh=True`` or the category is invalidated.
    Each failure is reported to the notifier at most once; callers that may be
    outdated pass ``notify=False`` and call ``report_failure`` themselves.
    """

    def __init__(self, source: LookupSource, notifier: Notifier | None = None):
        self.source = source
        self.notifier = notifier
        self._entries: dict[str, tuple[LookupOption, ...]] = {}
        self._inflight: dict[str, asyncio.Task[tuple[LookupOption, ...]]] = {}
        self._failed: set[str] = set()
        self._reported: set[str] = set()

    def get(self, category: str, parent_key: str | None = None) -> tuple[LookupOption, ...]:
        return self._entries.get(cache_key(category, parent_key), EMPTY)

    def has(self, category: str, parent_key: str | None = None) -> bool:
        return cache_key(category, parent_key) in self._entries

    def is_loading(self, category: str, parent_key: str | None = None) -> bool:
        return cache_key(category, parent_key) in self._inflight

    def is_failed(self, category: str, parent_key: str | None = None) -> bool:
        return cache_key(category, parent_key) in self._failed

    async def load(
        self,
        category: str,
        parent_key: str | None = None,
        *,
        refresh: bool = False,
        notify: bool = True,
    ) -> tuple[LookupOption, ...]:
        key = cache_key(category, parent_key)
        task = self._inflight.get(key)
        if task is None:
            if not refresh:
                if key in self._entries:
                    return self._entries[key]
                if key in self._failed:
                    if notify:
                        await self.report_failure(category, parent_key)
                    return EMPTY
            self._reported.discard(key)
            task = asyncio.create_task(self._fetch(key, category, parent_key))
            self._inflight[key] = task

        options = await task
        if notify:
            await self.report_failure(category, parent_key)
        return options

    async def report_failure(self, category: str, parent_key: str | None = None) -> None:
        key = cache_key(category, parent_key)
        if key not in self._failed or key in self._reported or self.notifier is None:
            return
        self._reported.add(key)
        await self.notifier.error(f"Failed to load {CATEGORY_LABELS.get(category, category)}")

    def invalidate(self, category: str) -> None:
        prefix = f"{category}:"
        for key in [key for key in self._entries if key == category or key.startswith(prefix)]:
            del self._entries[key]
        self._failed = {key for key in self._failed if key != category and not key.startswith(prefix)}
        self._reported = {key for key in self._reported if key != category and not key.startswith(prefix)}

    async def _fetch(self, key: str, category: str, parent_key: str | None) -> tuple[LookupOption, ...]:
        try:
            options = tuple(await self.source.fetch_lookup(category, parent_key))
        except BridgeError as exc:
            logger.warning("Lookup fetch failed key=%s kind=%s error=%s", key, exc.kind, exc.message)
            self._entries.pop(key, None)
            self._failed.add(key)
            return EMPTY
        finally:
            self._inflight.pop(key, None)

        self._entries[key] = options
        self._failed.discard(key)
        logger.debug("Loaded lookup key=%s count=%s", key, len(options))
        return options
