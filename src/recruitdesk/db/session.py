"""Engine and session factory for the local key-value store."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from recruitdesk.config import get_settings


def local_connect_args(database_url: str) -> dict[str, object]:
    # drafts are written from whichever thread the controller runs on
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


DATABASE_URL = get_settings().database_url
engine = create_engine(DATABASE_URL, connect_args=local_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
