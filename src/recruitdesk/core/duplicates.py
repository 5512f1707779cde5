from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Protocol

from recruitdesk.bridge.client import locked_result, parse_duplicate_body
from recruitdesk.bridge.errors import BridgeError
from recruitdesk.config import get_settings
from recruitdesk.core.notifications import Notifier
from recruitdesk.types import DuplicateCheckResult, DuplicateState

logger = logging.getLogger(__name__)

PHONE_LENGTH = 10
NOT_FOUND_MESSAGE = "Candidate not found"
_NON_DIGITS = re.compile(r"\D")

NotFoundHandler = Callable[[str], Awaitable[None] | None]
CandidateHandler = Callable[[dict[str, Any], DuplicateCheckResult], Awaitable[None] | None]


class DuplicateSource(Protocol):
    async def check_duplicate(self, phone: str) -> DuplicateCheckResult: ...

    async def check_duplicate_by_field(self, phone: str) -> DuplicateCheckResult: ...


def digits_only(value: object, limit: int | None = PHONE_LENGTH) -> str:
    digits = _NON_DIGITS.sub("", "" if value is None else str(value))
    return digits[:limit] if limit else digits


def phone_error(phone: str) -> str | None:
    if not phone:
        return None
    if len(phone) != PHONE_LENGTH:
        return f"Phone number must be 10 digits. Current: {len(phone)}"
    return None


@dataclass(frozen=True)
class DuplicatePolicy:
    cap: int | None = None
    manual_exempt: bool = True
    count_manual: bool = False
    endpoint: Literal["check", "input"] = "check"
    announce: bool = False

    @classmethod
    def call_details(cls) -> DuplicatePolicy:
        return cls(
            cap=get_settings().duplicate_check_cap,
            manual_exempt=True,
            count_manual=False,
            endpoint="input",
            announce=True,
        )

    @classmethod
    def intake(cls) -> DuplicatePolicy:
        return cls()


class DuplicateGuard:
    """Duplicate-phone detection for one phone field.

    ``on_input`` is the synchronous keystroke path: it normalizes the value,
    clears any earlier verdict and supersedes whatever check is in flight.
    ``observe`` fires the automatic check once per completed 10-digit value and
    ``check`` is the explicit button path. Results are committed only when the
    generation that started them is still current.
    """

    def __init__(
        self,
        source: DuplicateSource,
        *,
        policy: DuplicatePolicy | None = None,
        notifier: Notifier | None = None,
        on_not_found: NotFoundHandler | None = None,
        on_candidate: CandidateHandler | None = None,
    ):
        self.source = source
        self.policy = policy or DuplicatePolicy()
        self.notifier = notifier
        self.on_not_found = on_not_found
        self.on_candidate = on_candidate

        self.phone = ""
        self.state: DuplicateState = "idle"
        self.result: DuplicateCheckResult | None = None
        self.error: str | None = None
        self.checks_used = 0
        self._armed = True
        self._generation = 0
        self._closed = False

    @property
    def candidate(self) -> dict[str, Any] | None:
        return self.result.candidate if self.result else None

    @property
    def blocks_submission(self) -> bool:
        return self.state == "duplicate"

    @property
    def read_only(self) -> bool:
        return self.result is not None and self.result.is_duplicate

    @property
    def cap_reached(self) -> bool:
        return self.policy.cap is not None and self.checks_used >= self.policy.cap

    @property
    def checks_label(self) -> str:
        if self.policy.cap is None or not self.checks_used:
            return ""
        return f"{self.checks_used}/{self.policy.cap} checks used"

    @property
    def message(self) -> str:
        if self.state == "validating":
            return self.error or ""
        if self.state == "duplicate" and self.result is not None:
            return self.result.describe()
        if self.cap_reached and self.state in {"idle", "clear"}:
            return "You have reached the maximum number of checks."
        return self.error or ""

    def on_input(self, value: object) -> str:
        phone = digits_only(value)
        if phone == self.phone:
            return phone

        self.phone = phone
        self._armed = True
        self._generation += 1
        self.result = None
        self.error = phone_error(phone)
        self.state = "validating" if self.error else "idle"
        return phone

    async def observe(self, value: object) -> DuplicateState:
        phone = self.on_input(value)
        if len(phone) != PHONE_LENGTH or not self._armed:
            return self.state
        if self.cap_reached:
            logger.info("Automatic duplicate check skipped; cap=%s reached", self.policy.cap)
            return self.state

        self._armed = False
        self.checks_used += 1
        return await self._run(phone, manual=False)

    async def check(self, value: object | None = None, *, manual: bool = False) -> DuplicateState:
        phone = self.phone if value is None else digits_only(value)
        if len(phone) != PHONE_LENGTH:
            self.error = "Please enter a valid 10-digit mobile number"
            self.state = "validating"
            return self.state

        if self.cap_reached and not (manual and self.policy.manual_exempt):
            if manual and self.notifier is not None:
                await self.notifier.info("You have reached the maximum number of checks.")
            return self.state

        if not manual or self.policy.count_manual:
            self.checks_used += 1
        if phone == self.phone:
            self._armed = False
        return await self._run(phone, manual=manual)

    def reset(self) -> None:
        self.phone = ""
        self.state = "idle"
        self.result = None
        self.error = None
        self.checks_used = 0
        self._armed = True
        self._generation += 1

    def close(self) -> None:
        self._closed = True
        self._generation += 1

    async def _run(self, phone: str, *, manual: bool) -> DuplicateState:
        self._generation += 1
        generation = self._generation
        self.state = "checking"
        self.error = None

        lookup = self.source.check_duplicate_by_field if self.policy.endpoint == "input" else self.source.check_duplicate
        try:
            result = await lookup(phone)
        except BridgeError as exc:
            if not self._is_current(generation):
                logger.debug("Discarding stale duplicate error phone=%s", phone)
                return self.state
            if exc.kind == "Locked":
                return await self._commit(locked_result(exc.payload))
            if _carries_candidate(exc):
                return await self._commit(parse_duplicate_body(exc.payload))
            if exc.kind == "NotFound" and exc.message == NOT_FOUND_MESSAGE:
                self.state = "not_found"
                self.result = None
                if self.on_not_found is not None:
                    outcome = self.on_not_found(phone)
                    if outcome is not None:
                        await outcome
                return self.state

            self.state = "error"
            self.error = exc.message or "An error occurred while checking duplicity"
            if manual and self.notifier is not None:
                await self.notifier.error(self.error)
            else:
                logger.warning("Duplicate check failed phone=%s kind=%s error=%s", phone, exc.kind, exc.message)
            return self.state

        if not self._is_current(generation):
            logger.debug("Discarding stale duplicate result phone=%s", phone)
            return self.state

        return await self._commit(result)

    async def _commit(self, result: DuplicateCheckResult) -> DuplicateState:
        self.result = result
        self.state = "duplicate" if result.is_duplicate else "clear"
        if result.is_duplicate and self.policy.announce and self.notifier is not None:
            await self.notifier.info(f"{result.describe().rstrip('.')}. Viewing in read-only mode.")
        if result.candidate is not None and self.on_candidate is not None:
            outcome = self.on_candidate(result.candidate, result)
            if outcome is not None:
                await outcome
        return self.state

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation


def _carries_candidate(exc: BridgeError) -> bool:
    return isinstance(exc.payload, dict) and isinstance(exc.payload.get("candidate"), dict)
