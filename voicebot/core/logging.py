from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

APP_LOGGER_PREFIX = "voicebot"

DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else is treated as context.
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "level_color", "name_color", "reset", "taskName"}

# Context is propagated across awaits and into tasks created inside the scope.
_LOG_CONTEXT: ContextVar[dict[str, Any] | None] = ContextVar("voicebot_log_context", default=None)

# HTTP client and server libraries are chatty at INFO; keep them quiet by default.
_THIRD_PARTY_LEVELS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "uvicorn": logging.WARNING,
    "uvicorn.error": logging.INFO,
    "uvicorn.access": logging.WARNING,
}

_PLAIN_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
_COLOR_FORMAT = (
    "%(level_color)s%(asctime)s | %(levelname)s%(reset)s | "
    "%(name_color)s%(name)s%(reset)s | %(filename)s:%(lineno)d | "
    "%(level_color)s%(message)s%(reset)s"
)


class ContextInjectionFilter(logging.Filter):
    """Copies the active log_context() fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in (_LOG_CONTEXT.get() or {}).items():
            if key not in _RESERVED_RECORD_ATTRS:
                setattr(record, key, value)
        return True


class ContextFormatter(logging.Formatter):
    """Appends extra and context fields as a trailing [key=value ...] block."""

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)
        extra_fields = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_ATTRS}
        if not extra_fields:
            return base_message
        context_str = " ".join(f"{key}={value}" for key, value in extra_fields.items())
        return f"{base_message} [{context_str}]"


class ColorFormatter(ContextFormatter):
    _RESET = "\x1b[0m"
    _LEVEL_COLORS = {
        "DEBUG": "\x1b[36m",
        "INFO": "\x1b[32m",
        "WARNING": "\x1b[33m",
        "ERROR": "\x1b[31m",
        "CRITICAL": "\x1b[1;31m",
    }
    _NAME_COLOR = "\x1b[34m"

    def format(self, record: logging.LogRecord) -> str:
        record.level_color = self._LEVEL_COLORS.get(record.levelname, "")  # type: ignore[attr-defined]
        record.name_color = self._NAME_COLOR  # type: ignore[attr-defined]
        record.reset = self._RESET  # type: ignore[attr-defined]
        return super().format(record)


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Attach fields such as update_id or chat_id to every log line in this scope."""

    current = _LOG_CONTEXT.get() or {}
    token = _LOG_CONTEXT.set({**current, **kwargs})
    try:
        yield
    finally:
        _LOG_CONTEXT.reset(token)


def get_log_context() -> Mapping[str, Any]:
    return _LOG_CONTEXT.get() or {}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level(level_name: str | None) -> int:
    raw_level = (level_name or os.getenv("LOG_LEVEL", "INFO")).upper().strip()
    level = logging.getLevelName(raw_level)
    return level if isinstance(level, int) else logging.INFO


def setup_logging(*, log_level: str | None = None) -> None:
    """
    Configure process-wide logging.

    Environment variables:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
    - LOG_COLOR: enable ANSI colors (default: auto when stdout is a TTY)
    """
    root_level = _resolve_level(log_level)
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    formatter: logging.Formatter
    if _env_flag("LOG_COLOR", sys.stdout.isatty()):
        formatter = ColorFormatter(_COLOR_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
    else:
        formatter = ContextFormatter(_PLAIN_FORMAT, datefmt=DEFAULT_DATE_FORMAT)
    handler.setFormatter(formatter)
    handler.addFilter(ContextInjectionFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(root_level)
    logging.captureWarnings(True)

    logging.getLogger(APP_LOGGER_PREFIX).setLevel(root_level)
    for name, level in _THIRD_PARTY_LEVELS.items():
        # Never let third-party loggers drop below the configured app level.
        logging.getLogger(name).setLevel(max(level, root_level))

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={"log_level": logging.getLevelName(root_level)},
    )
