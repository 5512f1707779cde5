from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from recruitdesk.db.models import LocalEntry


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class LocalStorageRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str) -> LocalEntry | None:
        return self.session.get(LocalEntry, key)

    def set(self, key: str, value: Any, *, saved_at: datetime | None = None) -> LocalEntry:
        stamp = saved_at or datetime.now(UTC)
        entry = self.session.get(LocalEntry, key)
        if entry:
            entry.value_json = value
            entry.saved_at = stamp
        else:
            entry = LocalEntry(key=key, value_json=value, saved_at=stamp)
            self.session.add(entry)

        self.session.commit()
        self.session.refresh(entry)
        return entry

    def remove(self, key: str) -> bool:
        result = self.session.execute(delete(LocalEntry).where(LocalEntry.key == key))
        self.session.commit()
        return bool(result.rowcount)

    def keys(self) -> list[str]:
        return list(self.session.scalars(select(LocalEntry.key).order_by(LocalEntry.key)).all())
