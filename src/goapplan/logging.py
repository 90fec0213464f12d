"""Logging configuration for planner applications."""

from __future__ import annotations

import json
import logging
from logging.config import dictConfig
from typing import Any

__all__ = ["StructuredFormatter", "configure_logging", "resolve_level"]


_STANDARD_RECORD_FIELDS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__,
) | {"message", "asctime"}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        """Convert a record to JSON, keeping ``extra`` fields such as ``event``."""
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info

        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
        )

        return json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)


def resolve_level(level: int | str) -> int:
    """Translate a level name or number into a numeric logging level."""
    if isinstance(level, str):
        mapping = logging.getLevelNamesMapping()
        return mapping.get(level.upper(), logging.INFO)
    return int(level)


def configure_logging(level: int | str, *, structured: bool = True) -> None:
    """Initialise the root logger with console output on stderr.

    Records are rendered as JSON by :class:`StructuredFormatter` unless
    ``structured`` is false, in which case a plain text layout is used.
    """
    numeric_level = resolve_level(level)
    formatter: dict[str, Any] = (
        {"()": StructuredFormatter} if structured else {"format": _PLAIN_FORMAT}
    )

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"console": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": numeric_level,
                    "formatter": "console",
                    "stream": "ext://sys.stderr",
                },
            },
            "root": {
                "level": numeric_level,
                "handlers": ["console"],
            },
        },
    )
