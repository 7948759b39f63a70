"""Logging setup and the scheduler's event-line format.

Every service reports state changes as one line of the form
``Event name | key=value | key=value``. ``log_event`` renders that line so
bookings, suggestion runs and student changes read the same way in the
console and in the optional log file.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Any, Optional

from backend.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_LOGGER_INITIALIZED = False


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once; later calls are no-ops.

    Records always go to stdout. When ``LOG_FILE`` is set they are also
    appended to that file, whose parent directory is created on demand.
    """

    global _LOGGER_INITIALIZED
    if _LOGGER_INITIALIZED:
        return

    settings = get_settings()
    resolved_level = (level or settings.log_level).upper()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, handlers=handlers)
    _LOGGER_INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def _format_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple, set)):
        return ",".join(_format_value(item) for item in value)
    return str(value)


def format_event(event: str, **fields: Any) -> str:
    """Render ``event`` and its fields as a pipe-separated line.

    Fields keep their keyword order; ``None`` values are omitted.
    """

    parts = [event]
    parts.extend(
        f"{key}={_format_value(value)}" for key, value in fields.items() if value is not None
    )
    return " | ".join(parts)


def log_event(
    logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any
) -> None:
    if logger.isEnabledFor(level):
        logger.log(level, format_event(event, **fields))
