from __future__ import annotations

from pathlib import Path

from recruitdesk.config import get_settings
from recruitdesk.db.base import Base
from recruitdesk.db.session import engine
from recruitdesk.db import models  # noqa: F401


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, object]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
