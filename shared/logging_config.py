"""Structured JSON logging configuration."""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from shared.config import get_settings

# Attributes copied from `extra=` into the JSON payload when present
EXTRA_FIELDS = (
    "trace_id",
    "reservation_id",
    "stylist_id",
    "customer_id",
    "error_code",
    "request_path",
)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Fields: timestamp (record creation time, ISO 8601 UTC), level, logger,
    message, any of EXTRA_FIELDS passed via `extra=`, and exception text.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name)) for name in EXTRA_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # UUIDs, dates and Decimals in extras are rendered with str()
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None) -> None:
    """
    Route all logging to stderr as JSON.

    Args:
        level: Overrides settings.LOG_LEVEL when given
    """
    level_name = (level or get_settings().LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    root_logger.info(f"Logging configured: level={level_name}, format=JSON")
