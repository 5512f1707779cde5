from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from recruitdesk.config import get_settings
from recruitdesk.db.repositories import LocalStorageRepository, as_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DraftStore:
    """Keeps in-progress form values between sessions with a fixed time-to-live."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        ttl: timedelta | None = None,
        clock: Clock | None = None,
    ):
        if session_factory is None:
            from recruitdesk.db.session import SessionLocal

            session_factory = SessionLocal
        self.session_factory = session_factory
        self.ttl = ttl if ttl is not None else timedelta(minutes=get_settings().draft_ttl_min)
        self.clock = clock or _utcnow

    def is_expired(self, saved_at: datetime, now: datetime | None = None) -> bool:
        current = now or self.clock()
        return as_utc(current) - as_utc(saved_at) >= self.ttl

    def save(self, key: str, values: dict[str, Any]) -> datetime | None:
        if not any(value not in (None, "") for value in values.values()):
            return None

        payload = json.loads(json.dumps(values, default=str))
        stamp = self.clock()
        with self.session_factory() as session:
            LocalStorageRepository(session).set(key, payload, saved_at=stamp)
        return stamp

    def load(self, key: str) -> dict[str, Any] | None:
        with self.session_factory() as session:
            repo = LocalStorageRepository(session)
            entry = repo.get(key)
            if entry is None:
                return None

            if self.is_expired(entry.saved_at):
                logger.info("Discarding expired draft key=%s saved_at=%s", key, entry.saved_at)
                repo.remove(key)
                return None

            if not isinstance(entry.value_json, dict):
                logger.warning("Discarding malformed draft key=%s", key)
                repo.remove(key)
                return None
            return dict(entry.value_json)

    def saved_at(self, key: str) -> datetime | None:
        with self.session_factory() as session:
            entry = LocalStorageRepository(session).get(key)
            return as_utc(entry.saved_at) if entry else None

    def clear(self, key: str) -> None:
        with self.session_factory() as session:
            LocalStorageRepository(session).remove(key)
