from __future__ import annotations

import logging
from collections.abc import Callable
from typing import get_args

from sqlalchemy.orm import Session, sessionmaker

from recruitdesk.db.repositories import LocalStorageRepository
from recruitdesk.types import ThemeName

logger = logging.getLogger(__name__)

THEME_STORAGE_KEY = "theme"

ThemeListener = Callable[[ThemeName], None]


class ThemeStore:
    """Shared light/dark preference with explicit subscribe/notify."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None, *, default: ThemeName = "light"):
        self.session_factory = session_factory
        self._listeners: list[ThemeListener] = []
        self._theme: ThemeName = self._load() or default

    @property
    def theme(self) -> ThemeName:
        return self._theme

    @property
    def is_dark(self) -> bool:
        return self._theme == "dark"

    def subscribe(self, listener: ThemeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_theme(self, theme: str) -> ThemeName:
        if theme not in get_args(ThemeName):
            raise ValueError(f"unsupported theme '{theme}'")
        if theme == self._theme:
            return self._theme

        self._theme = theme  # type: ignore[assignment]
        self._persist()
        for listener in list(self._listeners):
            listener(self._theme)
        return self._theme

    def toggle(self) -> ThemeName:
        return self.set_theme("light" if self.is_dark else "dark")

    def _load(self) -> ThemeName | None:
        if self.session_factory is None:
            return None
        with self.session_factory() as session:
            entry = LocalStorageRepository(session).get(THEME_STORAGE_KEY)
        if entry and entry.value_json in get_args(ThemeName):
            return entry.value_json
        return None

    def _persist(self) -> None:
        if self.session_factory is None:
            return
        with self.session_factory() as session:
            LocalStorageRepository(session).set(THEME_STORAGE_KEY, self._theme)
        logger.debug("Persisted theme=%s", self._theme)
