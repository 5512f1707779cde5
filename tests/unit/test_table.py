from __future__ import annotations

import asyncio
from datetime import date

import pytest

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.core.screens import CALL_DETAILS_TABLE, LEAVES_TABLE, LINEUPS_TABLE, table_for
from recruitdesk.core.table import (
    TableQueryController,
    compare_values,
    matches_search,
    search_terms,
    sort_records,
)


def _leaves(count: int = 12) -> list[dict]:
    rows = []
    for index in range(1, count + 1):
        rows.append(
            {
                "_id": f"lv{index}",
                "leaveType": "Full Day" if index % 2 else "Half Day",
                "leaveReason": "Sick Leave" if index % 3 == 0 else "Casual Leave",
                "status": "Approved" if index <= 4 else "Pending",
                "description": f"Request {index}",
                "startDate": f"2025-0{1 + index % 3}-{10 + index}",
                "endDate": f"2025-0{1 + index % 3}-{10 + index}",
            }
        )
    return rows


def test_comparator_orders_missing_dates_numbers_and_text() -> None:
    assert compare_values(None, "a") < 0
    assert compare_values("2025-01-10", "2024-12-31") > 0
    assert compare_values("9", "10") < 0
    assert compare_values("apple", "Banana") < 0
    assert compare_values("Same", "same") == 0


def test_sort_records_supports_dotted_paths() -> None:
    rows = [
        {"incentiveSummary": {"amount": "1500"}},
        {"incentiveSummary": {"amount": "200"}},
        {},
    ]
    ordered = sort_records(rows, "incentiveSummary.amount", "desc")
    assert [row.get("incentiveSummary", {}).get("amount") for row in ordered] == ["1500", "200", None]


def test_search_terms_are_comma_separated_and_whitespace_insensitive() -> None:
    assert search_terms(" Ravi Kumar , indore,, ") == ["ravikumar", "indore"]
    record = {"name": "Ravi  Kumar", "city": "Indore"}
    assert matches_search(record, search_terms("ravi kumar, indore"), ("name", "city"))
    assert not matches_search(record, search_terms("ravi, bhopal"), ("name", "city"))


def test_unknown_filter_column_is_rejected(bridge, notifier) -> None:
    table = TableQueryController(LINEUPS_TABLE, bridge, notifier=notifier)
    with pytest.raises(ValueError):
        table.toggle_column_filter("salary", "10000")
    with pytest.raises(ValueError):
        table_for("payroll")


def test_sort_toggles_direction(bridge, notifier) -> None:
    table = TableQueryController(LEAVES_TABLE, bridge, notifier=notifier)
    assert table.set_sort("startDate").sort_direction == "asc"
    assert table.set_sort("startDate").sort_direction == "desc"
    assert table.set_sort("status").sort_direction == "asc"


def test_client_paging_counts_after_filters(bridge, notifier) -> None:
    bridge.pages["leaves"] = _leaves()
    table = TableQueryController(LEAVES_TABLE, bridge, page_size=5, notifier=notifier)
    assert asyncio.run(table.sync())

    assert table.total_count == 12
    assert table.total_pages == 3
    assert table.visible_count == 5

    table.set_page(3)
    table.toggle_column_filter("status", "approved")
    assert table.state.page == 1
    assert table.total_count == 4
    assert table.visible_count == 4

    table.set_search("casual")
    assert table.total_count == 3
    assert bridge.count("list_all") == 1


def test_server_paging_reports_server_total(bridge, notifier) -> None:
    bridge.pages["candidates"] = [
        {"_id": f"c{index}", "name": f"Candidate {index}", "callStatus": "Lineup" if index % 2 else "Pipeline"}
        for index in range(1, 26)
    ]
    table = TableQueryController(CALL_DETAILS_TABLE, bridge, page_size=10, notifier=notifier)
    asyncio.run(table.sync())
    table.toggle_column_filter("callStatus", "LINEUP")

    assert table.total_count == 25
    assert table.total_pages == 3
    assert table.visible_count == 5
    assert bridge.calls[-1] == ("list_paged", "candidates", 1, 10, "")


def test_sync_refetches_only_when_fetch_inputs_change(bridge, notifier) -> None:
    bridge.pages["candidates"] = [{"_id": "c1", "name": "Ravi"}]
    table = TableQueryController(CALL_DETAILS_TABLE, bridge, notifier=notifier)

    async def scenario():
        await table.sync()
        await table.sync()
        table.toggle_column_filter("gender", "Male")
        await table.sync()
        table.set_search("ravi")
        await table.sync()
        table.refresh()
        await table.sync()

    asyncio.run(scenario())
    assert bridge.count("list_paged") == 3
    assert bridge.calls[1][4] == "ravi"


def test_reset_triggers_exactly_one_fetch(bridge, notifier) -> None:
    bridge.pages["leaves"] = _leaves()
    table = TableQueryController(LEAVES_TABLE, bridge, notifier=notifier)

    async def scenario():
        await table.sync()
        table.set_search("sick")
        table.reset()
        await table.sync()
        await table.sync()

    asyncio.run(scenario())
    assert bridge.count("list_all") == 2
    assert table.state.search_text == ""


def test_date_range_expands_to_month(bridge, notifier) -> None:
    bridge.pages["leaves"] = _leaves()
    table = TableQueryController(LEAVES_TABLE, bridge, page_size=20, notifier=notifier)
    asyncio.run(table.sync())

    table.set_date_range("2025-02-20", "2025-02-20", "month")
    assert table.total_count == 4
    assert all(row["startDate"].startswith("2025-02") for row in table.current_page())

    with pytest.raises(ValueError):
        table.set_date_range(date(2025, 3, 1), date(2025, 2, 1))


def test_selection_is_scoped_to_visible_rows(bridge, notifier) -> None:
    bridge.pages["leaves"] = _leaves()
    table = TableQueryController(LEAVES_TABLE, bridge, page_size=5, notifier=notifier)
    asyncio.run(table.sync())

    assert table.select_all_visible() == {"lv1", "lv2", "lv3", "lv4", "lv5"}
    table.toggle_selection("lv2")
    assert len(table.selected_records()) == 4

    table.select_all_visible()
    assert len(table.selection) == 5
    table.select_all_visible()
    assert table.selection == set()

    table.toggle_selection("lv1")
    table.set_search("half")
    assert table.selection == set()


def test_stale_list_response_is_discarded(bridge, notifier) -> None:
    bridge.pages["lineups"] = [{"_id": f"l{index}", "name": f"Lineup {index}"} for index in range(1, 16)]
    table = TableQueryController(LINEUPS_TABLE, bridge, page_size=10, notifier=notifier)

    async def scenario():
        bridge.hold("list:lineups:1")
        first = asyncio.create_task(table.sync())
        await asyncio.sleep(0)
        table.set_page(2)
        second = await table.sync()
        bridge.release("list:lineups:1")
        return await first, second

    first, second = asyncio.run(scenario())
    assert first is False
    assert second is True
    assert [row["_id"] for row in table.current_page()] == ["l11", "l12", "l13", "l14", "l15"]


def test_list_error_is_notified(bridge, notifier) -> None:
    bridge.list_error = BridgeError("Database offline", kind="ServerError", status_code=500)
    table = TableQueryController(LINEUPS_TABLE, bridge, notifier=notifier)
    assert asyncio.run(table.sync()) is False
    assert table.error == "Database offline"
    assert notifier.messages("error") == ["Database offline"]
    assert table.needs_fetch
