from __future__ import annotations

import logging

from recruitdesk.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# third-party loggers that report every pooled HTTP connection
NOISY_LOGGERS = ("urllib3", "requests")

_configured = False


def resolve_level(name: str | None) -> int:
    level = logging.getLevelName((name or "").upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str | None = None) -> None:
    """Install the console handler once per process; ``level`` overrides LOG_LEVEL."""
    global _configured
    if _configured:
        return

    logging.basicConfig(level=resolve_level(level or get_settings().log_level), format=LOG_FORMAT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True
