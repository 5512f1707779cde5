from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

from recruitdesk.bridge.errors import BridgeError, kind_for_status, message_from_body
from recruitdesk.config import Settings, get_settings
from recruitdesk.types import BulkUploadResult, DuplicateCheckResult, LookupOption, PagedResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResourceRoutes:
    list_path: str
    create_path: str
    item_path: str
    update_method: str = "PUT"
    items_key: str = ""
    total_key: str = ""
    bulk_path: str = ""


RESOURCES: dict[str, ResourceRoutes] = {
    "candidates": ResourceRoutes(
        list_path="/candidates",
        create_path="/candidates/create",
        item_path="/candidates/{id}",
        update_method="PATCH",
        items_key="candidates",
        total_key="totalCandidates",
        bulk_path="/candidates/bulk-upload",
    ),
    "lineups": ResourceRoutes(
        list_path="/lineups",
        create_path="/lineups/create",
        item_path="/lineups/{id}",
        items_key="lineups",
        total_key="totalLineups",
    ),
    "walkins": ResourceRoutes(
        list_path="/walkins",
        create_path="/walkins/create",
        item_path="/walkins/{id}",
        items_key="walkins",
        total_key="totalWalkins",
    ),
    "joinings": ResourceRoutes(
        list_path="/joinings",
        create_path="/joinings/create",
        item_path="/joinings/{id}",
        items_key="joinings",
        total_key="totalJoinings",
    ),
    "leaves": ResourceRoutes(
        list_path="/leaves/my-leaves",
        create_path="/leaves/apply",
        item_path="/leaves/{id}",
        items_key="leaves",
        total_key="totalLeaves",
    ),
}

LOOKUP_PATHS: dict[str, str] = {
    "states": "/states",
    "cities": "/cities/{parent}",
    "localities": "/localities/indore",
    "qualifications": "/qualifications",
    "jobProfiles": "/jobprofiles",
}

PROFILE_PATH = "/Employee/Employee-profile"
PROFILE_UPDATE_PATH = "/Employee/update-employee-profile"
DUPLICATE_PATH = "/candidates/check-duplicate/{phone}"
DUPLICATE_INPUT_PATH = "/candidates/check-duplicate-input/{phone}"
CANDIDATE_BY_MOBILE_PATH = "/candidates/get-by-mobile/{phone}"


@dataclass(slots=True)
class BridgeConfig:
    base_url: str
    timeout_sec: int = 30
    token: str = ""


def routes_for(resource: str) -> ResourceRoutes:
    try:
        return RESOURCES[resource]
    except KeyError:
        raise ValueError(f"unknown resource '{resource}'") from None


def _first_int(*values: Any) -> int | None:
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
    return None


def normalize_list_body(body: Any, routes: ResourceRoutes, page_size: int | None = None) -> PagedResult:
    items: Any = None
    totals: dict[str, Any] = {}
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict):
        totals = body
        items = body.get("items")
        if items is None and routes.items_key:
            items = body.get(routes.items_key)
        if items is None and isinstance(body.get("data"), list):
            items = body["data"]
        if items is None:
            items = next((value for value in body.values() if isinstance(value, list)), [])

    rows = [item for item in (items or []) if isinstance(item, dict)]
    if len(rows) != len(items or []):
        logger.warning("Skipped %s malformed rows in list response", len(items or []) - len(rows))
    total = _first_int(totals.get("totalCount"), totals.get(routes.total_key), totals.get("total"))
    if total is None:
        total = len(rows)

    pages = _first_int(totals.get("totalPages"))
    if pages is None:
        pages = math.ceil(total / page_size) if page_size else (1 if total else 0)
    return PagedResult(items=rows, total_count=total, total_pages=pages)


def parse_duplicate_body(body: Any) -> DuplicateCheckResult:
    if not isinstance(body, dict):
        return DuplicateCheckResult()

    nested = body.get("data") if isinstance(body.get("data"), dict) else {}

    def pick(key: str) -> Any:
        value = body.get(key)
        return value if value is not None else nested.get(key)

    candidate = pick("candidate")
    if candidate is None and "_id" in body:
        candidate = body
    if not isinstance(candidate, dict):
        candidate = None

    locked_by = pick("lockedBy") or pick("registeredBy")
    remaining_time = pick("remainingTime")
    if not remaining_time and pick("remainingDays") is not None:
        remaining_time = f"{pick('remainingDays')} days"

    if pick("isDuplicate") is True or (pick("isLocked") and locked_by):
        return DuplicateCheckResult(
            is_duplicate=True,
            locked_by=locked_by,
            remaining_time=remaining_time,
            candidate=candidate,
        )
    if pick("alreadyInHistory") or pick("isLastRegisteredBy"):
        return DuplicateCheckResult(is_duplicate=True, already_registered=True, candidate=candidate)
    return DuplicateCheckResult(is_duplicate=False, candidate=candidate)


def locked_result(body: Any) -> DuplicateCheckResult:
    return parse_duplicate_body(body).model_copy(update={"is_duplicate": True})


def parse_lookup_body(body: Any) -> list[LookupOption]:
    if isinstance(body, dict):
        body = body.get("data", body.get("items", []))
    if not isinstance(body, list):
        return []

    options: list[LookupOption] = []
    for item in body:
        if isinstance(item, str):
            name, code = item.strip(), ""
        elif isinstance(item, dict):
            name = str(item.get("name") or item.get("label") or item.get("value") or "").strip()
            code = str(item.get("code") or item.get("isoCode") or "").strip()
        else:
            continue
        if name:
            options.append(LookupOption(value=name, label=name, code=code))
    return options


class PersistenceBridge:
    """Async facade over the back-office REST API.

    Each method maps to one backend operation. Failures raise ``BridgeError``
    whose ``kind`` is derived from the HTTP status; nothing is retried here.
    """

    def __init__(self, config: BridgeConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")
        if config.token:
            self.session.headers["Authorization"] = f"Bearer {config.token}"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PersistenceBridge:
        settings = settings or get_settings()
        return cls(
            BridgeConfig(
                base_url=settings.api_base_url,
                timeout_sec=settings.api_timeout_sec,
                token=settings.api_token,
            )
        )

    async def list_paged(
        self,
        resource: str,
        *,
        page: int = 1,
        page_size: int = 10,
        search: str = "",
    ) -> PagedResult:
        routes = routes_for(resource)
        params: dict[str, Any] = {"page": page, "limit": page_size}
        if search:
            params["search"] = search
        body = await self._request("GET", routes.list_path, params=params)
        return normalize_list_body(body, routes, page_size)

    async def list_all(self, resource: str) -> PagedResult:
        routes = routes_for(resource)
        body = await self._request("GET", routes.list_path)
        return normalize_list_body(body, routes)

    async def get_by_id(self, resource: str, record_id: str) -> dict[str, Any]:
        routes = routes_for(resource)
        body = await self._request("GET", routes.item_path.format(id=quote(str(record_id), safe="")))
        return body if isinstance(body, dict) else {}

    async def create(self, resource: str, payload: dict[str, Any]) -> dict[str, Any]:
        routes = routes_for(resource)
        body = await self._request("POST", routes.create_path, json=payload)
        return body if isinstance(body, dict) else {}

    async def update(self, resource: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        routes = routes_for(resource)
        path = routes.item_path.format(id=quote(str(record_id), safe=""))
        body = await self._request(routes.update_method, path, json=payload)
        return body if isinstance(body, dict) else {}

    async def check_duplicate(self, phone: str) -> DuplicateCheckResult:
        try:
            body = await self._request("GET", DUPLICATE_PATH.format(phone=quote(phone, safe="")))
        except BridgeError as exc:
            if exc.kind == "Locked":
                return locked_result(exc.payload)
            raise
        return parse_duplicate_body(body)

    async def check_duplicate_by_field(self, phone: str) -> DuplicateCheckResult:
        try:
            body = await self._request("GET", DUPLICATE_INPUT_PATH.format(phone=quote(phone, safe="")))
        except BridgeError as exc:
            if exc.kind == "Locked":
                return locked_result(exc.payload)
            # error replies that still carry the record are shown as the record
            if isinstance(exc.payload, dict) and exc.payload.get("candidate"):
                return parse_duplicate_body(exc.payload)
            raise
        return parse_duplicate_body(body)

    async def bulk_create(self, resource: str, records: list[dict[str, Any]]) -> BulkUploadResult:
        routes = routes_for(resource)
        if not routes.bulk_path:
            raise ValueError(f"resource '{resource}' does not support bulk upload")
        body = await self._request("POST", routes.bulk_path, json={resource: records})
        return BulkUploadResult.model_validate(body if isinstance(body, dict) else {})

    async def fetch_lookup(self, category: str, parent_key: str | None = None) -> list[LookupOption]:
        template = LOOKUP_PATHS.get(category)
        if template is None:
            raise ValueError(f"unknown lookup category '{category}'")
        if "{parent}" in template:
            if not parent_key:
                raise ValueError(f"lookup category '{category}' requires a parent key")
            template = template.format(parent=quote(parent_key, safe=""))
        body = await self._request("GET", template)
        return parse_lookup_body(body)

    async def get_candidate_name(self, phone: str) -> str:
        body = await self._request("GET", CANDIDATE_BY_MOBILE_PATH.format(phone=quote(phone, safe="")))
        if isinstance(body, dict):
            return str(body.get("name") or "")
        return ""

    async def get_profile(self) -> dict[str, Any]:
        body = await self._request("GET", PROFILE_PATH)
        if isinstance(body, dict):
            employee = body.get("employee")
            return employee if isinstance(employee, dict) else body
        return {}

    async def update_profile(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = await self._request("PUT", PROFILE_UPDATE_PATH, json={"profileData": payload})
        return body if isinstance(body, dict) else {}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        return await asyncio.to_thread(self._send, method, path, params, json)

    def _send(self, method: str, path: str, params: dict[str, Any] | None, json: Any) -> Any:
        url = f"{self.config.base_url.rstrip('/')}{path}"
        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                timeout=float(self.config.timeout_sec),
            )
        except requests.RequestException as exc:
            logger.warning("Request failed method=%s url=%s error=%s", method, url, exc)
            raise BridgeError(str(exc) or "Network error", kind="NetworkError") from exc

        body = self._parse_body(response)
        if response.status_code >= 400:
            message = message_from_body(body) or f"HTTP {response.status_code}"
            logger.warning(
                "Request rejected method=%s url=%s status=%s message=%s",
                method,
                url,
                response.status_code,
                message,
            )
            raise BridgeError(
                message,
                kind=kind_for_status(response.status_code),
                status_code=response.status_code,
                payload=body,
            )
        return body

    @staticmethod
    def _parse_body(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text
