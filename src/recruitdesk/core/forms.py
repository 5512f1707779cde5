from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from functools import partial
from typing import Any, Protocol

from recruitdesk.bridge.errors import BridgeError
from recruitdesk.core.dates import serialize_date
from recruitdesk.core.dependencies import CascadeCoordinator, FieldDependency, Resolution, resolve_dependency
from recruitdesk.core.duplicates import PHONE_LENGTH, DuplicateGuard
from recruitdesk.core.fields import (
    CustomField,
    DateField,
    FormProfile,
    SelectField,
    get_path,
    is_blank,
    lookup_categories,
    set_path,
)
from recruitdesk.core.lookups import LookupCache
from recruitdesk.core.notifications import Notifier
from recruitdesk.core.options import OTHERS, is_others
from recruitdesk.core.runtime import get_notifier
from recruitdesk.db.drafts import DraftStore
from recruitdesk.types import DuplicateCheckResult, LookupOption

logger = logging.getLogger(__name__)

__all__ = ["RecordFormController", "serialize_date"]

SavedCallback = Callable[[dict[str, Any]], Awaitable[None] | None]


class FormBridge(Protocol):
    async def create(self, resource: str, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, resource: str, record_id: str, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def update_profile(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    async def get_candidate_name(self, phone: str) -> str: ...

    async def fetch_lookup(self, category: str, parent_key: str | None = None) -> list[LookupOption]: ...

    async def check_duplicate(self, phone: str) -> DuplicateCheckResult: ...

    async def check_duplicate_by_field(self, phone: str) -> DuplicateCheckResult: ...


class RecordFormController:
    """Editable record bound to a ``FormProfile``.

    ``values`` is mutated only through ``apply_field_change``; requiredness and
    validation are recomputed from it on every call. Lookups, duplicate checks
    and name prefill run as background tasks whose late results are dropped
    once the triggering value changed or the controller is closed.
    """

    def __init__(
        self,
        profile: FormProfile,
        bridge: FormBridge,
        *,
        cache: LookupCache | None = None,
        notifier: Notifier | None = None,
        drafts: DraftStore | None = None,
        guard: DuplicateGuard | None = None,
        on_saved: SavedCallback | None = None,
    ):
        self.profile = profile
        self.bridge = bridge
        self.notifier = notifier or get_notifier()
        self.cache = cache or LookupCache(bridge, self.notifier)
        self.drafts = drafts
        self.guard = guard
        self.on_saved = on_saved
        self.coordinator = CascadeCoordinator(self.cache, profile.dependencies, on_resolved=self._commit_resolution)

        self.values: dict[str, Any] = profile.defaults()
        self.loaded: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.record_id: str | None = None
        self.submitting = False
        self.loading_name = False

        self._prefill_token = 0
        self._tasks: set[asyncio.Task[Any]] = set()
        self._deferred: list[Callable[[], Coroutine[Any, Any, Any]]] = []
        self._closed = False

    @property
    def is_editing(self) -> bool:
        return self.record_id is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def apply_field_change(self, field: str, value: Any) -> dict[str, Any]:
        if not self.profile.has_field(field):
            raise ValueError(f"unknown field '{field}' for form '{self.profile.name}'")

        spec = self.profile.get_field(field)
        previous = self.values.get(field)
        current = spec.coerce(value)
        changed: dict[str, Any] = {}
        self._set(field, current, changed)

        for source, target in self.profile.autofill:
            if source == field:
                self._set(target, self.profile.get_field(target).coerce(current), changed)

        if field == self.profile.status_field and current != previous:
            for name in self.profile.status_dates:
                self._set(name, None, changed)

        self._cascade(field, changed, refresh=current != previous)
        self._clear_companions(field, current, changed)

        for effect in self.profile.effects:
            for name, update in effect(field, current, self.values).items():
                self._set(name, self.profile.get_field(name).coerce(update), changed)

        if field == self.profile.duplicate_field and self.guard is not None:
            self.guard.on_input(current)
            if len(current) == PHONE_LENGTH:
                self._spawn(partial(self._observe_phone, current))

        if self.profile.prefill_name and field == self.profile.prefill_name[0] and current != previous:
            self._prefill_token += 1
            if not self.is_editing and len(current) == PHONE_LENGTH:
                self._spawn(self.prefill_from_phone)

        for name in changed:
            self.errors.pop(name, None)
        self._save_draft()
        return changed

    def prefill(self, values: Mapping[str, Any]) -> None:
        """Seed values handed over from another screen without triggering checks."""
        for name, value in values.items():
            if not self.profile.has_field(name):
                continue
            coerced = self.profile.get_field(name).coerce(value)
            self.values[name] = coerced
            for source, target in self.profile.autofill:
                if source == name:
                    self.values[target] = self.profile.get_field(target).coerce(coerced)
        if self.guard is not None and self.profile.duplicate_field in values:
            self.guard.on_input(self.values[self.profile.duplicate_field])
        self._save_draft()

    def options_for(self, field: str) -> tuple[LookupOption, ...]:
        spec = self.profile.get_field(field)
        edge = self.coordinator.edge_for_child(field)
        if edge is not None:
            return edge.resolve(str(self.values.get(edge.parent_field) or ""), self.cache)
        if not isinstance(spec, SelectField):
            return ()
        if spec.lookup:
            return (*self.cache.get(spec.lookup), *spec.extra_options)
        return spec.options

    def is_visible(self, field: str) -> bool:
        return self.profile.get_field(field).is_visible(self.values)

    def visible_fields(self) -> list[str]:
        return [spec.name for spec in self.profile.fields if spec.is_visible(self.values)]

    def required_fields(self) -> list[str]:
        profile = self.profile
        gate_open = profile.gate is None or profile.gate(self.values)
        names: list[str] = []
        for spec in profile.fields:
            if not spec.is_visible(self.values):
                continue
            if isinstance(spec, CustomField) or gate_open:
                required = spec.is_required(self.values)
            else:
                required = spec.name in profile.gate_fallback
            if required:
                names.append(spec.name)
        return names

    def validate(self) -> dict[str, str]:
        errors = {
            name: self.profile.get_field(name).missing_message()
            for name in self.required_fields()
            if is_blank(self.values.get(name))
        }
        for validator in self.profile.validators:
            for name, message in validator(self.values).items():
                errors.setdefault(name, message)
        return errors

    @property
    def can_submit(self) -> bool:
        if self.submitting or self._closed:
            return False
        if self.guard is not None and self.guard.blocks_submission:
            return False
        return not self.validate()

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for spec in self.profile.fields:
            key = spec.outbound_key
            if not key:
                continue

            value = self.values.get(spec.name)
            if spec.write_once and (not is_blank(self.loaded.get(spec.name)) or is_blank(value)):
                continue
            if not spec.is_visible(self.values):
                if spec.hidden_payload == "omit":
                    continue
                if spec.hidden_payload == "blank":
                    value = spec.empty()
            if isinstance(spec, DateField):
                value = serialize_date(value, date_only=spec.date_only_payload)
            set_path(payload, key, value)

        for pair in self.profile.sentinels:
            select = self.profile.get_field(pair.select)
            if select.outbound_key and is_others(self.values.get(pair.select)):
                set_path(payload, select.outbound_key, self.values.get(pair.companion) or "")
        return payload

    def load_record(self, record: Mapping[str, Any], record_id: str | None = None) -> None:
        values = self.profile.defaults()
        for spec in self.profile.fields:
            raw = get_path(record, spec.inbound_key)
            if raw is None and spec.inbound_key != spec.name:
                raw = get_path(record, spec.name)
            if raw is not None:
                values[spec.name] = spec.coerce(raw)

        self.values = values
        for pair in self.profile.sentinels:
            current = self.values.get(pair.select)
            if not current or is_others(current):
                continue
            known = [option.value for option in self.options_for(pair.select) if not is_others(option.value)]
            # unloaded lookups leave the value alone
            if known and current not in known:
                self.values[pair.companion] = current
                self.values[pair.select] = OTHERS

        self.loaded = dict(self.values)
        self.record_id = record_id or _record_id(record)
        self.errors = {}
        self._prefill_token += 1
        if self.guard is not None:
            self.guard.reset()

    def restore_draft(self) -> bool:
        if not self.profile.draft_key or self.drafts is None:
            return False
        draft = self.drafts.load(self.profile.draft_key)
        if not draft:
            return False

        for name, value in draft.items():
            if self.profile.has_field(name):
                self.values[name] = self.profile.get_field(name).coerce(value)
        if self.guard is not None and self.profile.duplicate_field:
            self.guard.on_input(self.values.get(self.profile.duplicate_field))
        logger.info("Restored draft form=%s", self.profile.name)
        return True

    def reset(self) -> None:
        self.values = self.profile.defaults()
        self.loaded = {}
        self.errors = {}
        self.record_id = None
        self.loading_name = False
        self._prefill_token += 1
        for edge in self.profile.dependencies:
            self.coordinator.supersede(edge.child_field)
        if self.guard is not None:
            self.guard.reset()
        if self.profile.draft_key and self.drafts is not None:
            self.drafts.clear(self.profile.draft_key)

    async def submit(self) -> dict[str, Any] | None:
        if self.submitting:
            logger.info("Ignoring submit while another is in flight form=%s", self.profile.name)
            return None
        if self._closed:
            return None

        errors = self.validate()
        self.errors = errors
        if errors:
            message = next(iter(errors.values())) if len(errors) == 1 else "Please correct the errors in the form"
            await self.notifier.error(message)
            return None

        if self.guard is not None and self.guard.blocks_submission:
            await self.notifier.error(self.guard.message or "Candidate is locked by another recruiter")
            return None

        payload = self.to_payload()
        updating = self.is_editing
        self.submitting = True
        try:
            body = await self._persist(payload)
        except BridgeError as exc:
            logger.warning(
                "Submit failed form=%s kind=%s status=%s message=%s",
                self.profile.name,
                exc.kind,
                exc.status_code,
                exc.message,
            )
            if not self._closed:
                backend_message = exc.message if exc.status_code is not None else ""
                await self.notifier.error(backend_message or self.profile.failure_message)
            return None
        finally:
            self.submitting = False

        if self._closed:
            logger.debug("Dropping submit result for closed form=%s", self.profile.name)
            return body

        template = self.profile.updated_message if updating else self.profile.created_message
        message = body.get("message") if isinstance(body.get("message"), str) else ""
        await self.notifier.success(message or template.format(title=self.profile.title, **self.values))

        if self.profile.submit_kind == "profile":
            self.loaded = dict(self.values)
        else:
            self.reset()

        if self.on_saved is not None:
            outcome = self.on_saved(body)
            if outcome is not None:
                await outcome
        return body

    async def prefill_from_phone(self) -> str | None:
        if not self.profile.prefill_name or self.is_editing:
            return None
        phone_field, name_field = self.profile.prefill_name
        phone = str(self.values.get(phone_field) or "")
        if len(phone) != PHONE_LENGTH:
            return None

        token = self._prefill_token
        self.loading_name = True
        try:
            name = await self.bridge.get_candidate_name(phone)
        except BridgeError as exc:
            logger.warning("Candidate name lookup failed phone=%s kind=%s", phone, exc.kind)
            name = ""
        finally:
            if token == self._prefill_token:
                self.loading_name = False

        if self._closed or token != self._prefill_token or self.values.get(phone_field) != phone:
            logger.debug("Discarding stale candidate name for phone=%s", phone)
            return None
        if name:
            self.values[name_field] = name
            self.errors.pop(name_field, None)
        return name or None

    async def refresh_options(self) -> None:
        categories = lookup_categories(self.profile)
        if categories:
            await asyncio.gather(*(self.cache.load(category) for category in categories))

        for edge in self.profile.dependencies:
            if edge.lookup is None:
                continue
            target = edge.lookup(str(self.values.get(edge.parent_field) or ""), self.cache)
            if target is not None:
                await self.cache.load(*target)

    async def settle(self) -> None:
        """Start work deferred by calls made outside an event loop and wait for all of it."""
        while self._deferred or self._tasks:
            deferred, self._deferred = self._deferred, []
            for factory in deferred:
                self._spawn(factory)
            if self._tasks:
                await asyncio.gather(*list(self._tasks))

    def close(self) -> None:
        self._closed = True
        self._deferred.clear()
        self.coordinator.close()
        if self.guard is not None:
            self.guard.close()

    async def _persist(self, payload: dict[str, Any]) -> dict[str, Any]:
        profile = self.profile
        if profile.submit_kind == "profile":
            return await self.bridge.update_profile(payload)
        if profile.resource is None:
            raise ValueError(f"form '{profile.name}' has no resource")
        if self.record_id is not None:
            if not profile.allow_update:
                raise ValueError(f"form '{profile.name}' does not support updates")
            return await self.bridge.update(profile.resource, self.record_id, payload)
        if not profile.allow_create:
            raise ValueError(f"form '{profile.name}' needs a loaded record to save")
        return await self.bridge.create(profile.resource, payload)

    def _set(self, name: str, value: Any, changed: dict[str, Any]) -> None:
        if self.values.get(name) != value or name not in self.values:
            changed[name] = value
        self.values[name] = value

    def _cascade(self, parent: str, changed: dict[str, Any], *, refresh: bool) -> None:
        for edge in self.coordinator.edges_from(parent):
            resolution = resolve_dependency(
                edge,
                str(self.values.get(parent) or ""),
                str(self.values.get(edge.child_field) or ""),
                self.cache,
            )
            child_changed = self.values.get(edge.child_field) != resolution.next_child_value
            self._set(edge.child_field, resolution.next_child_value, changed)
            if refresh and edge.lookup is not None:
                self._spawn(partial(self._refresh_edge, edge, str(self.values.get(parent) or "")))
            if child_changed:
                self._cascade(edge.child_field, changed, refresh=True)

    def _clear_companions(self, field: str, value: Any, changed: dict[str, Any]) -> None:
        for pair in self.profile.sentinels:
            if pair.select != field:
                continue
            keep = any(is_others(self.values.get(name)) for name in pair.keep_when)
            if pair.clear_always or (not is_others(value) and not keep):
                for name in pair.cleared_fields:
                    self._set(name, "", changed)

    async def _observe_phone(self, phone: str) -> None:
        # a newer number has already superseded this one
        if self.guard is None or self.guard.phone != phone:
            return
        await self.guard.observe(phone)

    async def _refresh_edge(self, edge: FieldDependency, parent_value: str) -> None:
        await self.coordinator.refresh(edge, parent_value, lambda: str(self.values.get(edge.child_field) or ""))

    def _commit_resolution(self, edge: FieldDependency, resolution: Resolution) -> None:
        if self._closed:
            return
        if self.values.get(edge.child_field) == resolution.next_child_value:
            return
        changed: dict[str, Any] = {}
        self._set(edge.child_field, resolution.next_child_value, changed)
        self._cascade(edge.child_field, changed, refresh=True)
        self._save_draft()

    def _save_draft(self) -> None:
        profile = self.profile
        if self._closed or not profile.draft_key or self.drafts is None:
            return
        if profile.draft_fields and all(is_blank(self.values.get(name)) for name in profile.draft_fields):
            return
        self.drafts.save(profile.draft_key, self.values)

    def _spawn(self, factory: Callable[[], Coroutine[Any, Any, Any]]) -> asyncio.Task[Any] | None:
        if self._closed:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._deferred.append(factory)
            logger.debug("No running loop; deferred %s background calls form=%s", len(self._deferred), self.profile.name)
            return None
        task = loop.create_task(factory())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


def _record_id(record: Mapping[str, Any]) -> str | None:
    value = record.get("_id") or record.get("id")
    return str(value) if value is not None else None
