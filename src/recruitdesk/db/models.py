from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from recruitdesk.db.base import Base, TimestampMixin


class LocalEntry(TimestampMixin, Base):
    """One key of client-side storage (form drafts, theme preference)."""

    __tablename__ = "local_entries"

    key: Mapped[str] = mapped_column(String(120), primary_key=True)
    value_json: Mapped[Any] = mapped_column(JSON, nullable=True)
    saved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
