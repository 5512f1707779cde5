from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from functools import cmp_to_key
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.config import get_settings
from recruitdesk.core.dates import as_day, as_local_datetime, looks_like_date, period_bounds
from recruitdesk.core.fields import get_path
from recruitdesk.core.notifications import Notifier
from recruitdesk.core.runtime import get_notifier
from recruitdesk.core.screens import TableProfile
from recruitdesk.types import DateRange, Granularity, PagedResult, SortDirection

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]

_WHITESPACE = re.compile(r"\s+")


class ListSource(Protocol):
    async def list_paged(self, resource: str, *, page: int, page_size: int, search: str) -> PagedResult: ...

    async def list_all(self, resource: str) -> PagedResult: ...


class TableQueryState(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = 1
    page_size: int = 10
    sort_field: str | None = None
    sort_direction: SortDirection = "asc"
    search_text: str = ""
    column_filters: dict[str, frozenset[str]] = Field(default_factory=dict)
    date_range: DateRange = Field(default_factory=DateRange)
    granularity: Granularity = "day"

    @field_validator("page", "page_size")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("page and page_size must be at least 1")
        return value

    @classmethod
    def defaults(cls, page_size: int | None = None) -> TableQueryState:
        settings = get_settings()
        return cls(
            page_size=page_size or settings.default_page_size,
            granularity=settings.date_range_granularity,
        )

    @property
    def active_filters(self) -> dict[str, frozenset[str]]:
        return {column: values for column, values in self.column_filters.items() if values}


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def compare_values(left: Any, right: Any) -> int:
    """Ascending order: missing first, then dates, numbers and case-insensitive text."""
    if left is None and right is None:
        return 0
    if left is None:
        return -1
    if right is None:
        return 1

    if looks_like_date(left) and looks_like_date(right):
        left_date, right_date = as_local_datetime(left), as_local_datetime(right)
        if left_date is not None and right_date is not None:
            return (left_date > right_date) - (left_date < right_date)
    if isinstance(left, date) and isinstance(right, date):
        left_date, right_date = as_local_datetime(left), as_local_datetime(right)
        return (left_date > right_date) - (left_date < right_date)

    left_number, right_number = _number(left), _number(right)
    if left_number is not None and right_number is not None:
        return (left_number > right_number) - (left_number < right_number)

    left_text, right_text = str(left).lower(), str(right).lower()
    return (left_text > right_text) - (left_text < right_text)


def sort_records(records: Iterable[Record], field: str | None, direction: SortDirection = "asc") -> list[Record]:
    rows = list(records)
    if not field:
        return rows

    def compare(left: Record, right: Record) -> int:
        outcome = compare_values(get_path(left, field), get_path(right, field))
        return outcome if direction == "asc" else -outcome

    return sorted(rows, key=cmp_to_key(compare))


def _normalize(value: Any) -> str:
    return _WHITESPACE.sub("", str(value).lower())


def search_terms(text: str) -> list[str]:
    return [term for term in (_normalize(part.strip()) for part in text.split(",")) if term]


def matches_search(record: Record, terms: Sequence[str], fields: Sequence[str]) -> bool:
    if not terms:
        return True
    haystack = []
    for path in fields:
        value = get_path(record, path)
        if value is None or value == "":
            continue
        haystack.append(_normalize(value))
    return all(any(term in value for value in haystack) for term in terms)


def matches_filters(record: Record, filters: Mapping[str, frozenset[str]], profile: TableProfile) -> bool:
    for column, wanted in filters.items():
        if not wanted:
            continue
        path = profile.filter_column(column).path
        value = str(get_path(record, path, "")).strip().lower()
        if value not in {item.strip().lower() for item in wanted}:
            return False
    return True


def matches_date_range(record: Record, date_range: DateRange, granularity: Granularity, fields: Sequence[str]) -> bool:
    if not date_range.is_active:
        return True
    lower, upper = period_bounds(date_range.start, date_range.end, granularity)
    for path in fields:
        moment = as_local_datetime(get_path(record, path))
        if moment is not None and lower <= moment <= upper:
            return True
    return False


class TableQueryController:
    """Paging, sorting, search and column filters for one list screen.

    Server-paged screens send page, page size and search text to the bridge and
    narrow the returned page in memory; client-paged screens fetch everything
    once per refresh key and do all of it in memory. ``sync`` fetches only when
    the fetch inputs changed since the last successful fetch.
    """

    def __init__(
        self,
        profile: TableProfile,
        source: ListSource,
        *,
        page_size: int | None = None,
        notifier: Notifier | None = None,
    ):
        self.profile = profile
        self.source = source
        self.notifier = notifier or get_notifier()
        self._initial_page_size = page_size
        self.state = TableQueryState.defaults(page_size)

        self.refresh_key = 0
        self.items: list[dict[str, Any]] = []
        self.server_total = 0
        self.server_pages = 0
        self.loading = False
        self.error: str | None = None
        self.selection: set[str] = set()
        self.fetch_count = 0

        self._synced_key: tuple[Any, ...] | None = None
        self._token = 0
        self._closed = False

    @property
    def is_server_paged(self) -> bool:
        return self.profile.paging == "server"

    def fetch_key(self) -> tuple[Any, ...]:
        if self.is_server_paged:
            return (self.state.page, self.state.page_size, self.state.search_text, self.refresh_key)
        return (self.refresh_key,)

    @property
    def needs_fetch(self) -> bool:
        return self._synced_key != self.fetch_key()

    def set_page(self, page: int) -> TableQueryState:
        self.state = self.state.model_copy(update={"page": max(1, page)})
        return self.state

    def set_page_size(self, page_size: int) -> TableQueryState:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.state = self.state.model_copy(update={"page_size": page_size, "page": 1})
        return self.state

    def set_sort(self, field: str) -> TableQueryState:
        if self.state.sort_field == field:
            direction: SortDirection = "desc" if self.state.sort_direction == "asc" else "asc"
        else:
            direction = "asc"
        self.state = self.state.model_copy(update={"sort_field": field, "sort_direction": direction})
        return self.state

    def set_search(self, text: str) -> TableQueryState:
        text = text or ""
        if text == self.state.search_text:
            return self.state
        self._narrowed(search_text=text)
        return self.state

    def toggle_column_filter(self, column: str, value: str) -> TableQueryState:
        self.profile.filter_column(column)
        current = self.state.column_filters.get(column, frozenset())
        updated = current - {value} if value in current else current | {value}
        filters = {**self.state.column_filters, column: frozenset(updated)}
        self._narrowed(column_filters={key: values for key, values in filters.items() if values})
        return self.state

    def clear_column_filter(self, column: str) -> TableQueryState:
        filters = {key: values for key, values in self.state.column_filters.items() if key != column}
        self._narrowed(column_filters=filters)
        return self.state

    def set_date_range(
        self,
        start: date | str | None,
        end: date | str | None,
        granularity: Granularity | None = None,
    ) -> TableQueryState:
        date_range = DateRange(start=as_day(start), end=as_day(end))
        if date_range.is_active and date_range.end < date_range.start:
            raise ValueError("date range end must not be before its start")
        self._narrowed(date_range=date_range, granularity=granularity or self.state.granularity)
        return self.state

    def reset(self) -> TableQueryState:
        self.state = TableQueryState.defaults(self._initial_page_size)
        self.selection.clear()
        self.refresh_key += 1
        return self.state

    def refresh(self) -> int:
        self.refresh_key += 1
        return self.refresh_key

    async def sync(self) -> bool:
        if self._closed or not self.needs_fetch:
            return False

        self._token += 1
        token = self._token
        key = self.fetch_key()
        self.loading = True
        self.error = None
        self.fetch_count += 1
        try:
            if self.is_server_paged:
                result = await self.source.list_paged(
                    self.profile.resource,
                    page=self.state.page,
                    page_size=self.state.page_size,
                    search=self.state.search_text,
                )
            else:
                result = await self.source.list_all(self.profile.resource)
        except BridgeError as exc:
            if not self._is_current(token):
                logger.debug("Discarding stale list error table=%s", self.profile.name)
                return False
            self.loading = False
            self.error = exc.message or f"Failed to load {self.profile.title.lower()}"
            logger.warning("List fetch failed table=%s kind=%s error=%s", self.profile.name, exc.kind, exc.message)
            await self.notifier.error(self.error)
            return False

        if not self._is_current(token):
            logger.debug("Discarding stale list response table=%s key=%s", self.profile.name, key)
            return False

        self.loading = False
        self.items = list(result.items)
        self.server_total = result.total_count
        self.server_pages = result.total_pages
        self._synced_key = key
        return True

    def filtered_records(self) -> list[Record]:
        state = self.state
        rows: Iterable[Record] = self.items
        filters = state.active_filters
        if filters:
            rows = [row for row in rows if matches_filters(row, filters, self.profile)]
        if state.date_range.is_active:
            rows = [
                row
                for row in rows
                if matches_date_range(row, state.date_range, state.granularity, self.profile.date_fields)
            ]
        if not self.is_server_paged and state.search_text:
            terms = search_terms(state.search_text)
            rows = [row for row in rows if matches_search(row, terms, self.profile.search_fields)]
        return sort_records(rows, state.sort_field, state.sort_direction)

    def current_page(self) -> list[Record]:
        rows = self.filtered_records()
        if self.is_server_paged:
            return rows
        start = (self.state.page - 1) * self.state.page_size
        return rows[start : start + self.state.page_size]

    @property
    def total_count(self) -> int:
        if self.is_server_paged:
            return self.server_total
        return len(self.filtered_records())

    @property
    def total_pages(self) -> int:
        if self.is_server_paged:
            return self.server_pages
        return math.ceil(self.total_count / self.state.page_size)

    @property
    def visible_count(self) -> int:
        return len(self.current_page())

    def record_id(self, record: Record) -> str | None:
        value = get_path(record, self.profile.id_field)
        return str(value) if value is not None else None

    def toggle_selection(self, record_id: str) -> set[str]:
        if record_id in self.selection:
            self.selection.discard(record_id)
        else:
            self.selection.add(record_id)
        return self.selection

    def select_all_visible(self) -> set[str]:
        visible = {record_id for record_id in map(self.record_id, self.current_page()) if record_id}
        if visible and visible <= self.selection:
            self.selection -= visible
        else:
            self.selection |= visible
        return self.selection

    def clear_selection(self) -> None:
        self.selection.clear()

    def selected_records(self) -> list[Record]:
        return [row for row in self.items if self.record_id(row) in self.selection]

    def close(self) -> None:
        self._closed = True

    def _narrowed(self, **changes: Any) -> None:
        self.state = self.state.model_copy(update={**changes, "page": 1})
        self.selection.clear()

    def _is_current(self, token: int) -> bool:
        return not self._closed and token == self._token
