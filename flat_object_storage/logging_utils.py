"""
Logging for stores, sessions and the persistence coordinator.

Every logger in the package hangs off ``flat_object_storage`` and is
obtained through get_storage_logger(). Records about one object carry
the context fields ``object_id``, ``key_path`` and ``operation``, passed
as ``extra`` or bound once with a StorageLoggerAdapter.
StructuredJsonFormatter lifts those fields to top-level JSON keys so a
log collector can filter by object.

Usage:

    >>> configure_structured_logging(logging.DEBUG)
    >>> session = ObjectSession(store)  # now logs JSON lines to stderr
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

PACKAGE_LOGGER = "flat_object_storage"

CONTEXT_FIELDS = ("object_id", "key_path", "operation")

# Attributes every LogRecord has; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


class StructuredJsonFormatter(logging.Formatter):
    """
    Render a record as one JSON object per line.

    ``timestamp``, ``level``, ``logger`` and ``message`` are always
    present. Context fields appear at the top level when set. Other
    ``extra`` values are grouped under ``data``; values json cannot
    encode are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        data = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in CONTEXT_FIELDS and not key.startswith("_")
        }
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = PACKAGE_LOGGER,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Send a logger's records to stream as JSON lines.

    Handlers already on the logger are replaced, so calling this twice
    does not duplicate output.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)
        stream: Destination (default: sys.stderr)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


def get_storage_logger(component: str) -> logging.Logger:
    """Logger named ``flat_object_storage.<component>``."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{component}")


class StorageLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter binding object context to every record.

    Bound fields win over per-call ``extra`` with the same name.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs
