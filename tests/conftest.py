from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any

_TEST_DIR = Path(tempfile.mkdtemp(prefix="recruitdesk-tests-"))
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DIR / 'recruitdesk.db'}")
os.environ.setdefault("DATA_DIR", str(_TEST_DIR))
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")

import pytest

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.core.notifications import Notifier
from recruitdesk.db.base import Base
from recruitdesk.db.session import engine
from recruitdesk.types import DuplicateCheckResult, LookupOption, PagedResult


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


class FakeBridge:
    """In-memory stand-in for ``PersistenceBridge``.

    Lookups can be held back per composite key with ``hold`` and released with
    ``release`` to control the order in which responses arrive.
    """

    def __init__(self) -> None:
        self.lookups: dict[str, list[LookupOption]] = {}
        self.lookup_errors: dict[str, BridgeError] = {}
        self.duplicates: dict[str, DuplicateCheckResult | BridgeError] = {}
        self.names: dict[str, str] = {}
        self.pages: dict[str, list[dict[str, Any]]] = {}
        self.list_error: BridgeError | None = None
        self.submit_error: BridgeError | None = None
        self.submit_body: dict[str, Any] = {}

        self.calls: list[tuple[Any, ...]] = []
        self._gates: dict[str, asyncio.Event] = {}

    def hold(self, key: str) -> None:
        self._gates[key] = asyncio.Event()

    def release(self, key: str) -> None:
        self._gates[key].set()

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def fetch_lookup(self, category: str, parent_key: str | None = None) -> list[LookupOption]:
        key = f"{category}:{parent_key}" if parent_key else category
        self.calls.append(("fetch_lookup", key))
        gate = self._gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.lookup_errors:
            raise self.lookup_errors[key]
        return list(self.lookups.get(key, []))

    async def check_duplicate(self, phone: str) -> DuplicateCheckResult:
        self.calls.append(("check_duplicate", phone))
        return await self._duplicate(phone)

    async def check_duplicate_by_field(self, phone: str) -> DuplicateCheckResult:
        self.calls.append(("check_duplicate_by_field", phone))
        return await self._duplicate(phone)

    async def get_candidate_name(self, phone: str) -> str:
        self.calls.append(("get_candidate_name", phone))
        gate = self._gates.get(f"name:{phone}")
        if gate is not None:
            await gate.wait()
        return self.names.get(phone, "")

    async def create(self, resource: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", resource, payload))
        return self._submitted()

    async def update(self, resource: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update", resource, record_id, payload))
        return self._submitted()

    async def update_profile(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update_profile", payload))
        return self._submitted()

    async def list_paged(self, resource: str, *, page: int, page_size: int, search: str) -> PagedResult:
        self.calls.append(("list_paged", resource, page, page_size, search))
        gate = self._gates.get(f"list:{resource}:{page}")
        if gate is not None:
            await gate.wait()
        if self.list_error is not None:
            raise self.list_error
        rows = self.pages.get(resource, [])
        start = (page - 1) * page_size
        total = len(rows)
        return PagedResult(
            items=rows[start : start + page_size],
            total_count=total,
            total_pages=-(-total // page_size),
        )

    async def list_all(self, resource: str) -> PagedResult:
        self.calls.append(("list_all", resource))
        if self.list_error is not None:
            raise self.list_error
        rows = self.pages.get(resource, [])
        return PagedResult(items=rows, total_count=len(rows), total_pages=1 if rows else 0)

    async def _duplicate(self, phone: str) -> DuplicateCheckResult:
        gate = self._gates.get(f"dup:{phone}")
        if gate is not None:
            await gate.wait()
        outcome = self.duplicates.get(phone, DuplicateCheckResult())
        if isinstance(outcome, BridgeError):
            raise outcome
        return outcome

    def _submitted(self) -> dict[str, Any]:
        if self.submit_error is not None:
            raise self.submit_error
        return dict(self.submit_body)


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier(history_limit=50)


def option_list(*values: str, codes: dict[str, str] | None = None) -> list[LookupOption]:
    codes = codes or {}
    return [LookupOption(value=value, label=value, code=codes.get(value, "")) for value in values]


@pytest.fixture
def options():
    return option_list
