from __future__ import annotations

import asyncio

from recruitdesk.core.dependencies import (
    CITY_LOCALITY,
    COMPANY_PROCESS,
    STATE_CITY,
    CascadeCoordinator,
    resolve_dependency,
    state_code,
)
from recruitdesk.core.lookups import LookupCache


def _loaded_cache(bridge, options) -> LookupCache:
    bridge.lookups["states"] = options("Madhya Pradesh", "Maharashtra", codes={"Madhya Pradesh": "MP", "Maharashtra": "MH"})
    bridge.lookups["cities:MP"] = options("Indore", "Bhopal")
    bridge.lookups["cities:MH"] = options("Mumbai", "Pune")
    bridge.lookups["localities"] = options("Vijay Nagar", "Palasia")
    cache = LookupCache(bridge)

    async def warm():
        await cache.load("states")
        await cache.load("cities", "MP")
        await cache.load("cities", "MH")
        await cache.load("localities")

    asyncio.run(warm())
    return cache


def test_state_code_falls_back_to_name(bridge, options) -> None:
    cache = _loaded_cache(bridge, options)
    assert state_code("madhya pradesh", cache) == "MP"
    assert state_code("Goa", cache) == "Goa"


def test_child_kept_when_present_and_cleared_when_absent(bridge, options) -> None:
    cache = _loaded_cache(bridge, options)

    kept = resolve_dependency(STATE_CITY, "Madhya Pradesh", "Bhopal", cache)
    assert kept.next_child_value == "Bhopal"
    assert [option.value for option in kept.options] == ["Indore", "Bhopal"]

    cleared = resolve_dependency(STATE_CITY, "Maharashtra", "Bhopal", cache)
    assert cleared.next_child_value == ""


def test_others_survives_option_change(bridge, options) -> None:
    cache = _loaded_cache(bridge, options)
    resolution = resolve_dependency(STATE_CITY, "Maharashtra", "Others", cache)
    assert resolution.next_child_value == "Others"


def test_locality_only_for_indore(bridge, options) -> None:
    cache = _loaded_cache(bridge, options)

    indore = resolve_dependency(CITY_LOCALITY, "INDORE", "Palasia", cache)
    assert indore.next_child_value == "Palasia"
    assert len(indore.options) == 2

    mumbai = resolve_dependency(CITY_LOCALITY, "Mumbai", "Palasia", cache)
    assert mumbai.options == ()
    assert mumbai.next_child_value == ""


def test_company_others_forces_process(bridge) -> None:
    cache = LookupCache(bridge)

    forced = resolve_dependency(COMPANY_PROCESS, "others", "Sales", cache)
    assert forced.next_child_value == "others"

    normal = resolve_dependency(COMPANY_PROCESS, "ICICI Lombard", "Sales", cache)
    assert normal.next_child_value == "Sales"
    assert resolve_dependency(COMPANY_PROCESS, "Taskus", "Sales", cache).next_child_value == ""


def test_coordinator_discards_superseded_response(bridge, options) -> None:
    bridge.lookups["states"] = options("Madhya Pradesh", "Maharashtra", codes={"Madhya Pradesh": "MP", "Maharashtra": "MH"})
    bridge.lookups["cities:MP"] = options("Indore", "Bhopal")
    bridge.lookups["cities:MH"] = options("Mumbai", "Pune")
    cache = LookupCache(bridge)
    committed = []
    coordinator = CascadeCoordinator(
        cache,
        (STATE_CITY,),
        on_resolved=lambda edge, resolution: committed.append(resolution),
    )

    async def scenario():
        await cache.load("states")
        bridge.hold("cities:MP")
        bridge.hold("cities:MH")
        first = asyncio.create_task(coordinator.refresh(STATE_CITY, "Madhya Pradesh", lambda: ""))
        second = asyncio.create_task(coordinator.refresh(STATE_CITY, "Maharashtra", lambda: ""))
        await asyncio.sleep(0)
        bridge.release("cities:MH")
        newer = await second
        bridge.release("cities:MP")
        older = await first
        return older, newer

    older, newer = asyncio.run(scenario())
    assert older is None
    assert [option.value for option in newer.options] == ["Mumbai", "Pune"]
    assert committed == [newer]


def test_closed_coordinator_commits_nothing(bridge, options) -> None:
    bridge.lookups["cities:Goa"] = options("Panaji")
    cache = LookupCache(bridge)
    committed = []
    coordinator = CascadeCoordinator(cache, (STATE_CITY,), on_resolved=lambda edge, res: committed.append(res))

    async def scenario():
        bridge.hold("cities:Goa")
        task = asyncio.create_task(coordinator.refresh(STATE_CITY, "Goa", lambda: ""))
        await asyncio.sleep(0)
        coordinator.close()
        bridge.release("cities:Goa")
        return await task

    assert asyncio.run(scenario()) is None
    assert committed == []
