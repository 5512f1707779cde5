from __future__ import annotations

import asyncio

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.core.lookups import EMPTY, LookupCache, cache_key


def test_cache_key_includes_parent() -> None:
    assert cache_key("states") == "states"
    assert cache_key("cities", "MP") == "cities:MP"


def test_concurrent_loads_share_one_fetch(bridge, notifier, options) -> None:
    bridge.lookups["qualifications"] = options("Graduate", "Post Graduate")
    cache = LookupCache(bridge, notifier)

    async def scenario():
        bridge.hold("qualifications")
        first = asyncio.create_task(cache.load("qualifications"))
        second = asyncio.create_task(cache.load("qualifications"))
        await asyncio.sleep(0)
        assert cache.is_loading("qualifications")
        assert cache.get("qualifications") == EMPTY
        bridge.release("qualifications")
        return await first, await second

    first, second = asyncio.run(scenario())
    assert first == second
    assert [option.value for option in first] == ["Graduate", "Post Graduate"]
    assert bridge.count("fetch_lookup") == 1

    asyncio.run(cache.load("qualifications"))
    assert bridge.count("fetch_lookup") == 1


def test_city_entries_are_keyed_by_state(bridge, notifier, options) -> None:
    bridge.lookups["cities:MP"] = options("Indore", "Bhopal")
    bridge.lookups["cities:MH"] = options("Mumbai")
    cache = LookupCache(bridge, notifier)

    asyncio.run(cache.load("cities", "MP"))

    assert [option.value for option in cache.get("cities", "MP")] == ["Indore", "Bhopal"]
    assert cache.get("cities", "MH") == EMPTY
    assert not cache.has("cities", "MH")


def test_failed_load_notifies_once_and_stays_empty(bridge, notifier, options) -> None:
    bridge.lookup_errors["states"] = BridgeError("boom", kind="ServerError", status_code=500)
    cache = LookupCache(bridge, notifier)

    assert asyncio.run(cache.load("states")) == EMPTY
    assert cache.is_failed("states")
    assert notifier.messages("error") == ["Failed to load states"]

    assert asyncio.run(cache.load("states")) == EMPTY
    assert bridge.count("fetch_lookup") == 1
    assert len(notifier.messages("error")) == 1

    del bridge.lookup_errors["states"]
    bridge.lookups["states"] = options("Goa")
    loaded = asyncio.run(cache.load("states", refresh=True))
    assert [option.value for option in loaded] == ["Goa"]
    assert not cache.is_failed("states")


def test_invalidate_drops_entries_and_failures(bridge, notifier, options) -> None:
    bridge.lookups["cities:MP"] = options("Indore")
    bridge.lookup_errors["cities:GJ"] = BridgeError("down", kind="NetworkError")
    cache = LookupCache(bridge, notifier)

    async def scenario():
        await cache.load("cities", "MP")
        await cache.load("cities", "GJ")

    asyncio.run(scenario())
    assert cache.has("cities", "MP")
    assert cache.is_failed("cities", "GJ")

    cache.invalidate("cities")
    assert not cache.has("cities", "MP")
    assert not cache.is_failed("cities", "GJ")


def test_silent_load_leaves_reporting_to_the_caller(bridge, notifier) -> None:
    bridge.lookup_errors["cities:MP"] = BridgeError("boom", kind="ServerError", status_code=500)
    cache = LookupCache(bridge, notifier)

    async def scenario():
        await cache.load("cities", "MP", notify=False)
        assert notifier.messages() == []
        await cache.report_failure("cities", "MP")
        await cache.report_failure("cities", "MP")
        await cache.load("cities", "MP")

    asyncio.run(scenario())
    assert notifier.messages("error") == ["Failed to load cities"]
    assert bridge.count("fetch_lookup") == 1
