from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import get_args

import typer

from recruitdesk.bridge.client import PersistenceBridge
from recruitdesk.bridge.errors import BridgeError
from recruitdesk.config import get_settings
from recruitdesk.core.duplicates import DuplicateGuard, DuplicatePolicy
from recruitdesk.core.lookups import LookupCache
from recruitdesk.core.notifications import Notifier
from recruitdesk.core.screens import table_for
from recruitdesk.core.table import TableQueryController
from recruitdesk.core.theme import ThemeStore
from recruitdesk.db.drafts import DraftStore
from recruitdesk.db.init import init_database
from recruitdesk.db.session import SessionLocal
from recruitdesk.logging_config import configure_logging
from recruitdesk.types import Granularity

app = typer.Typer(help="Recruitdesk CLI")
draft_app = typer.Typer(help="Inspect the saved call-intake draft")
theme_app = typer.Typer(help="Read or change the theme preference")

app.add_typer(draft_app, name="draft")
app.add_typer(theme_app, name="theme")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


@app.callback()
def main(log_level: str = typer.Option("", "--log-level", help="Override LOG_LEVEL for this command")) -> None:
    if log_level:
        configure_logging(log_level)


def _echo(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: BridgeError) -> None:
    _echo({"ok": False, "kind": exc.kind, "status_code": exc.status_code, "message": exc.message})
    raise typer.Exit(code=1)


@app.command("init")
def init_cmd() -> None:
    """Initialize the local database and data directories."""
    configure_logging()
    result = init_database()
    _echo({"ok": True, **result})


@app.command("table")
def table_cmd(
    name: str = typer.Argument(..., help="call_details, lineups, walkins, joinings or leaves"),
    page: int = typer.Option(1, "--page"),
    page_size: int = typer.Option(0, "--page-size"),
    search: str = typer.Option("", "--search"),
    sort: str = typer.Option("", "--sort"),
    desc: bool = typer.Option(False, "--desc"),
    filters: list[str] = typer.Option([], "--filter", help="column=value, repeatable"),
    start: str = typer.Option("", "--from"),
    end: str = typer.Option("", "--to"),
    granularity: str = typer.Option("", "--granularity"),
) -> None:
    configure_logging()
    try:
        profile = table_for(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    allowed_sizes = get_settings().page_size_list
    if page_size and page_size not in allowed_sizes:
        raise typer.BadParameter(f"page size must be one of {allowed_sizes}")
    if granularity and granularity not in get_args(Granularity):
        raise typer.BadParameter(f"granularity must be one of {list(get_args(Granularity))}")
    if bool(start) != bool(end):
        raise typer.BadParameter("--from and --to must be given together")

    controller = TableQueryController(profile, PersistenceBridge.from_settings(), page_size=page_size or None)
    controller.set_search(search)
    for item in filters:
        column, _, value = item.partition("=")
        if not value:
            raise typer.BadParameter(f"filter '{item}' must look like column=value")
        try:
            controller.toggle_column_filter(column, value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if start and end:
        try:
            controller.set_date_range(start, end, granularity or None)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if sort:
        controller.set_sort(sort)
        if desc:
            controller.set_sort(sort)
    controller.set_page(page)

    synced = asyncio.run(controller.sync())
    if not synced and controller.error:
        _echo({"ok": False, "message": controller.error})
        raise typer.Exit(code=1)

    _echo(
        {
            "table": profile.name,
            "page": controller.state.page,
            "page_size": controller.state.page_size,
            "total_count": controller.total_count,
            "total_pages": controller.total_pages,
            "visible_count": controller.visible_count,
            "items": controller.current_page(),
        }
    )


@app.command("check-duplicate")
def check_duplicate_cmd(
    phone: str = typer.Argument(...),
    by_field: bool = typer.Option(False, "--by-field", help="Use the call-details lookup endpoint"),
) -> None:
    configure_logging()
    notifier = Notifier()
    policy = DuplicatePolicy.call_details() if by_field else DuplicatePolicy.intake()
    not_found: list[str] = []
    guard = DuplicateGuard(
        PersistenceBridge.from_settings(),
        policy=policy,
        notifier=notifier,
        on_not_found=not_found.append,
    )

    state = asyncio.run(guard.check(phone, manual=True))
    _echo(
        {
            "phone": guard.phone or phone,
            "state": state,
            "message": guard.message,
            "redirect_to_intake": bool(not_found),
            "result": guard.result.model_dump() if guard.result else None,
            "notifications": notifier.messages(),
        }
    )
    if state == "error":
        raise typer.Exit(code=1)


@app.command("lookups")
def lookups_cmd(
    category: str = typer.Argument(..., help="states, cities, localities, qualifications or jobProfiles"),
    parent: str = typer.Option("", "--parent", help="State code for cities"),
) -> None:
    configure_logging()
    notifier = Notifier()
    cache = LookupCache(PersistenceBridge.from_settings(), notifier)
    try:
        options = asyncio.run(cache.load(category, parent or None))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if cache.is_failed(category, parent or None):
        _echo({"ok": False, "notifications": notifier.messages()})
        raise typer.Exit(code=1)
    _echo([option.model_dump() for option in options])


@app.command("bulk-upload")
def bulk_upload_cmd(
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    resource: str = typer.Option("candidates", "--resource"),
) -> None:
    """Upload records already parsed from a spreadsheet (a JSON array of objects)."""
    configure_logging()
    records = json.loads(file.read_text(encoding="utf-8"))
    if isinstance(records, dict):
        records = records.get(resource, [])
    if not isinstance(records, list) or not records or not all(isinstance(item, dict) for item in records):
        raise typer.BadParameter("file must contain a non-empty JSON array of objects")

    try:
        result = asyncio.run(PersistenceBridge.from_settings().bulk_create(resource, records))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except BridgeError as exc:
        _fail(exc)
        return
    _echo(result.model_dump())


@draft_app.command("show")
def draft_show(key: str = typer.Option("", "--key")) -> None:
    configure_logging()
    ensure_initialized()
    draft_key = key or get_settings().intake_draft_key
    store = DraftStore(SessionLocal)
    values = store.load(draft_key)
    _echo({"key": draft_key, "saved_at": store.saved_at(draft_key) if values else None, "values": values})


@draft_app.command("clear")
def draft_clear(key: str = typer.Option("", "--key")) -> None:
    configure_logging()
    ensure_initialized()
    draft_key = key or get_settings().intake_draft_key
    DraftStore(SessionLocal).clear(draft_key)
    _echo({"ok": True, "key": draft_key})


@theme_app.command("get")
def theme_get() -> None:
    configure_logging()
    ensure_initialized()
    _echo({"theme": ThemeStore(SessionLocal).theme})


@theme_app.command("set")
def theme_set(name: str = typer.Argument(..., help="light or dark")) -> None:
    configure_logging()
    ensure_initialized()
    try:
        theme = ThemeStore(SessionLocal).set_theme(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    _echo({"theme": theme})


@theme_app.command("toggle")
def theme_toggle() -> None:
    configure_logging()
    ensure_initialized()
    _echo({"theme": ThemeStore(SessionLocal).toggle()})


if __name__ == "__main__":
    app()
