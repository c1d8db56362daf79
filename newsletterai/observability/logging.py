from __future__ import annotations

import logging
import os
from typing import Final

_HANDLER_ATTACHED: bool = False
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that flood INFO during rendering and delivery
_NOISY_LOGGERS: Final[tuple[str, ...]] = (
    "selenium",
    "urllib3",
    "httpx",
    "google.auth",
)


def _resolve_level() -> int:
    level_name = os.getenv("NEWSLETTERAI_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _quiet_third_party(level: int) -> None:
    floor = max(level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(floor)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; the first call attaches the root stream handler."""
    global _HANDLER_ATTACHED

    level = _resolve_level()
    root = logging.getLogger()

    if not _HANDLER_ATTACHED:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        _quiet_third_party(level)
        _HANDLER_ATTACHED = True

    root.setLevel(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger
