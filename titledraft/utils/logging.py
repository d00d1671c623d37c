"""
Logging utilities for titledraft.

Every deed table manager logs with `extra={"table_type": ...}`; the console
format shows that tag in its own column so interleaved sync decisions of
several tables stay readable. The JSON formatter lifts all `extra=` context
(table_type, deed_id, field...) into the payload.

Usage:
    from titledraft.utils.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_logs=False)
    log = get_logger(__name__)
    log.info("[DEED INSERT] added", extra={"table_type": "table2"})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

NO_TABLE = "-"

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as JSON string."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
    }
    for key, value in vars(record).items():
        if key in _RESERVED_ATTRS or key == "extra":
            continue
        payload[key] = value
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        payload.update(nested)
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class TableContextFilter(logging.Filter):
    """Give records logged outside a deed table a placeholder `table_type`."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "table_type", None):
            record.table_type = NO_TABLE
        return True


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    force: bool = True,
) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit one JSON object per record instead of the console format.
    force : bool
        Replace handlers already installed on the root logger. When False an
        existing configuration is left alone.
    """
    root = logging.getLogger()
    if root.handlers and not force:
        return

    handler: Dict[str, Any] = {
        "class": "logging.StreamHandler",
        "formatter": "json" if json_logs else "console",
        "level": level.upper(),
        "filters": ["table_context"],
    }
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"table_context": {"()": TableContextFilter}},
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)-7s | %(table_type)-6s | %(name)s | %(message)s",
                    "datefmt": "%H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {"default": handler},
            "root": {"handlers": ["default"], "level": level.upper()},
            # asyncpg logs every notification payload at DEBUG
            "loggers": {"asyncpg": {"level": "WARNING"}},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["NO_TABLE", "TableContextFilter", "configure_logging", "get_logger", "JsonFormatter"]
