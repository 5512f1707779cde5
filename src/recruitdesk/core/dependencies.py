from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from recruitdesk.core.lookups import EMPTY, LookupCache
from recruitdesk.core.options import OTHERS, is_others, processes_for_company
from recruitdesk.types import LookupOption

logger = logging.getLogger(__name__)

Options = tuple[LookupOption, ...]
Resolver = Callable[[str, LookupCache], Options]
ResetRule = Callable[[str, Options], bool]
LookupTarget = Callable[[str, LookupCache], "tuple[str, str | None] | None"]

LOCALITY_CITY = "indore"


def absent_from(child_value: str, options: Options) -> bool:
    if is_others(child_value):
        return False
    return all(option.value != child_value for option in options)


@dataclass(frozen=True)
class FieldDependency:
    """Edge from a parent field to a child field whose options it determines."""

    parent_field: str
    child_field: str
    resolve: Resolver
    reset_child_if: ResetRule = absent_from
    lookup: LookupTarget | None = None
    force_child: Callable[[str], str | None] = field(default=lambda parent_value: None)


@dataclass(frozen=True)
class Resolution:
    options: Options
    next_child_value: str


def resolve_dependency(
    edge: FieldDependency,
    parent_value: str,
    current_child_value: str,
    cache: LookupCache,
) -> Resolution:
    options = edge.resolve(parent_value or "", cache)
    forced = edge.force_child(parent_value or "")
    if forced is not None:
        return Resolution(options, forced)

    child = current_child_value or ""
    if child and edge.reset_child_if(child, options):
        child = ""
    return Resolution(options, child)


def state_code(state: str, cache: LookupCache) -> str:
    wanted = state.strip().lower()
    for option in cache.get("states"):
        if option.value.lower() == wanted:
            return option.code or option.value
    return state


def _cities_for_state(state: str, cache: LookupCache) -> Options:
    if not state:
        return EMPTY
    return cache.get("cities", state_code(state, cache))


def _cities_target(state: str, cache: LookupCache) -> tuple[str, str | None] | None:
    if not state:
        return None
    return "cities", state_code(state, cache)


def is_locality_city(city: str) -> bool:
    return (city or "").strip().lower() == LOCALITY_CITY


def _localities_for_city(city: str, cache: LookupCache) -> Options:
    if not is_locality_city(city):
        return EMPTY
    return cache.get("localities")


def _localities_target(city: str, cache: LookupCache) -> tuple[str, str | None] | None:
    return ("localities", None) if is_locality_city(city) else None


def _locality_reset(child_value: str, options: Options) -> bool:
    if not options:
        return True
    return absent_from(child_value, options)


def _static_processes(company: str, cache: LookupCache) -> Options:
    return processes_for_company(company)


def _force_others(company: str) -> str | None:
    return OTHERS if is_others(company) else None


def company_edge(parent_field: str, child_field: str) -> FieldDependency:
    return FieldDependency(
        parent_field=parent_field,
        child_field=child_field,
        resolve=_static_processes,
        force_child=_force_others,
    )


STATE_CITY = FieldDependency(
    parent_field="state",
    child_field="city",
    resolve=_cities_for_state,
    lookup=_cities_target,
)

CITY_LOCALITY = FieldDependency(
    parent_field="city",
    child_field="locality",
    resolve=_localities_for_city,
    reset_child_if=_locality_reset,
    lookup=_localities_target,
)

LINEUP_COMPANY_PROCESS = company_edge("lineupCompany", "lineupProcess")
JD_REFERENCE_COMPANY_PROCESS = FieldDependency(
    parent_field="jdReferenceCompany",
    child_field="jdReferenceProcess",
    resolve=_static_processes,
)
COMPANY_PROCESS = company_edge("company", "process")

LOCATION_EDGES = (STATE_CITY, CITY_LOCALITY)


class StaleLookupResponse(Exception):
    """Raised internally when a dependent lookup completes for an outdated parent value."""


class CascadeCoordinator:
    """Refreshes dependent option sets and commits only the latest result per child.

    Each child field carries a request token. A refresh bumps the token before
    awaiting the lookup; when the lookup returns under an older token the
    result is discarded, ``on_resolved`` is not called and a failed lookup is
    not reported.
    """

    def __init__(
        self,
        cache: LookupCache,
        edges: tuple[FieldDependency, ...],
        on_resolved: Callable[[FieldDependency, Resolution], Awaitable[None] | None] | None = None,
    ):
        self.cache = cache
        self.edges = edges
        self.on_resolved = on_resolved
        self._tokens: dict[str, int] = {edge.child_field: 0 for edge in edges}
        self._closed = False

    def edges_from(self, parent_field: str) -> list[FieldDependency]:
        return [edge for edge in self.edges if edge.parent_field == parent_field]

    def edge_for_child(self, child_field: str) -> FieldDependency | None:
        return next((edge for edge in self.edges if edge.child_field == child_field), None)

    def token(self, child_field: str) -> int:
        return self._tokens.get(child_field, 0)

    def supersede(self, child_field: str) -> int:
        self._tokens[child_field] = self._tokens.get(child_field, 0) + 1
        return self._tokens[child_field]

    async def refresh(
        self,
        edge: FieldDependency,
        parent_value: str,
        current_child_value: Callable[[], str],
        *,
        force: bool = True,
    ) -> Resolution | None:
        token = self.supersede(edge.child_field)
        target = edge.lookup(parent_value, self.cache) if edge.lookup else None
        if target is not None:
            category, parent_key = target
            await self.cache.load(
                category,
                parent_key,
                refresh=force and self.cache.is_failed(category, parent_key),
                notify=False,
            )

        try:
            self._ensure_current(edge.child_field, token)
        except StaleLookupResponse:
            logger.debug(
                "Discarding stale lookup child=%s parent=%s token=%s",
                edge.child_field,
                parent_value,
                token,
            )
            return None

        if target is not None:
            await self.cache.report_failure(*target)
        resolution = resolve_dependency(edge, parent_value, current_child_value(), self.cache)
        if self.on_resolved is not None:
            result = self.on_resolved(edge, resolution)
            if result is not None:
                await result
        return resolution

    def close(self) -> None:
        self._closed = True

    def _ensure_current(self, child_field: str, token: int) -> None:
        if self._closed or self._tokens.get(child_field) != token:
            raise StaleLookupResponse(child_field)
