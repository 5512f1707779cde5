from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
from typer.testing import CliRunner

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.cli.app import app
from recruitdesk.types import BulkUploadResult, DuplicateCheckResult

runner = CliRunner()


@pytest.fixture
def cli_bridge(bridge, monkeypatch):
    monkeypatch.setattr("recruitdesk.cli.app.PersistenceBridge", SimpleNamespace(from_settings=lambda: bridge))
    return bridge


def _json(result) -> object:
    assert result.exit_code == 0, result.stdout
    return json.loads(result.stdout)


def test_init_creates_tables() -> None:
    payload = _json(runner.invoke(app, ["init"]))
    assert payload["ok"] is True
    assert "local_entries" in payload["tables"]


def test_theme_commands_persist() -> None:
    assert _json(runner.invoke(app, ["theme", "set", "dark"])) == {"theme": "dark"}
    assert _json(runner.invoke(app, ["theme", "get"])) == {"theme": "dark"}
    assert _json(runner.invoke(app, ["theme", "toggle"])) == {"theme": "light"}

    rejected = runner.invoke(app, ["theme", "set", "sepia"])
    assert rejected.exit_code != 0


def test_table_command_filters_fetched_rows(cli_bridge) -> None:
    cli_bridge.pages["leaves"] = [
        {"_id": "lv1", "leaveType": "Full Day", "status": "Approved", "startDate": "2025-03-10"},
        {"_id": "lv2", "leaveType": "Half Day", "status": "Pending", "startDate": "2025-03-11"},
        {"_id": "lv3", "leaveType": "Full Day", "status": "Pending", "startDate": "2025-04-01"},
    ]
    payload = _json(
        runner.invoke(
            app,
            ["table", "leaves", "--filter", "status=pending", "--sort", "startDate", "--desc"],
        )
    )
    assert payload["total_count"] == 2
    assert [row["_id"] for row in payload["items"]] == ["lv3", "lv2"]


def test_table_command_reports_fetch_errors(cli_bridge) -> None:
    cli_bridge.list_error = BridgeError("Service unavailable", kind="ServerError", status_code=503)
    result = runner.invoke(app, ["table", "lineups"])
    assert result.exit_code == 1
    assert json.loads(result.stdout)["message"] == "Service unavailable"


def test_check_duplicate_command(cli_bridge) -> None:
    cli_bridge.duplicates["9876543210"] = DuplicateCheckResult(is_duplicate=True, locked_by="Asha")
    payload = _json(runner.invoke(app, ["check-duplicate", "98765-43210"]))
    assert payload["state"] == "duplicate"
    assert payload["message"] == "Candidate already locked by Asha"

    cli_bridge.duplicates["9000000000"] = BridgeError("Candidate not found", kind="NotFound", status_code=404)
    payload = _json(runner.invoke(app, ["check-duplicate", "9000000000", "--by-field"]))
    assert payload["state"] == "not_found"
    assert payload["redirect_to_intake"] is True


def test_lookups_command(cli_bridge, options) -> None:
    cli_bridge.lookups["cities:MP"] = options("Indore", "Bhopal")
    payload = _json(runner.invoke(app, ["lookups", "cities", "--parent", "MP"]))
    assert [item["value"] for item in payload] == ["Indore", "Bhopal"]


def test_bulk_upload_command(tmp_path, monkeypatch) -> None:
    sent = {}

    async def bulk_create(resource, records):
        sent[resource] = records
        return BulkUploadResult.model_validate(
            {"status": "success", "message": "1 uploaded", "results": {"successful": 1, "total": 1}}
        )

    fake = SimpleNamespace(bulk_create=bulk_create)
    monkeypatch.setattr("recruitdesk.cli.app.PersistenceBridge", SimpleNamespace(from_settings=lambda: fake))
    source = tmp_path / "candidates.json"
    source.write_text(json.dumps([{"name": "Ravi", "mobileNo": "9876543210"}]), encoding="utf-8")

    payload = _json(runner.invoke(app, ["bulk-upload", "--file", str(source)]))
    assert payload["results"]["successful"] == 1
    assert sent == {"candidates": [{"name": "Ravi", "mobileNo": "9876543210"}]}

    source.write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    assert runner.invoke(app, ["bulk-upload", "--file", str(source)]).exit_code != 0


def test_draft_show_and_clear() -> None:
    from recruitdesk.db.drafts import DraftStore
    from recruitdesk.db.session import SessionLocal

    DraftStore(SessionLocal).save("callInfoFormData", {"candidateName": "Ravi"})
    shown = _json(runner.invoke(app, ["draft", "show"]))
    assert shown["values"] == {"candidateName": "Ravi"}
    assert shown["saved_at"] is not None

    assert _json(runner.invoke(app, ["draft", "clear"]))["ok"] is True
    assert _json(runner.invoke(app, ["draft", "show"]))["values"] is None


def test_table_command_rejects_bad_range_options(cli_bridge) -> None:
    cli_bridge.pages["leaves"] = []
    unknown = runner.invoke(app, ["table", "leaves", "--from", "2025-03-01", "--to", "2025-03-31", "--granularity", "week"])
    assert unknown.exit_code != 0
    assert "granularity" in unknown.output

    reversed_range = runner.invoke(app, ["table", "leaves", "--from", "2025-03-31", "--to", "2025-03-01"])
    assert reversed_range.exit_code != 0
    assert "before" in reversed_range.output

    half_open = runner.invoke(app, ["table", "leaves", "--from", "2025-03-01"])
    assert half_open.exit_code != 0
    assert cli_bridge.count("list_all") == 0


def test_table_command_accepts_only_offered_page_sizes(cli_bridge) -> None:
    cli_bridge.pages["leaves"] = [{"_id": f"lv{index}", "status": "Pending"} for index in range(25)]
    rejected = runner.invoke(app, ["table", "leaves", "--page-size", "7"])
    assert rejected.exit_code != 0

    payload = _json(runner.invoke(app, ["--log-level", "debug", "table", "leaves", "--page-size", "20"]))
    assert payload["page_size"] == 20
    assert payload["visible_count"] == 20
