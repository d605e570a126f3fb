"""Logging setup: one JSON object per line, correlated by request id.

Reconciliation and stock code pass order context through ``extra=``
(row_id, delivery_type, carrier_status, ...). Those fields become JSON
keys, or trailing key=value pairs when LOG_JSON is off.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from .request_id import NO_REQUEST_ID, get_request_id

# Fields passed through `extra=` that are carried into the output
CONTEXT_FIELDS = (
    "row_id",
    "delivery_type",
    "tracking",
    "carrier_status",
    "status",
    "previous_status",
    "page",
    "code",
    "product_name",
    "variant",
    "quantity",
    "operation",
    "duration_ms",
    "status_code",
)

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "celery.redirected")


def context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Order context attached to a record, in CONTEXT_FIELDS order."""
    fields = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value if isinstance(value, (int, float, bool)) else str(value)
    return fields


class RequestIDFilter(logging.Filter):
    """Stamp the current correlation id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Set record.request_id from the bound context.

        Args:
            record: Log record to stamp

        Returns:
            bool: Always True (records are never dropped)
        """
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a record with its request id and order context.

        Args:
            record: Log record to format

        Returns:
            str: JSON-encoded log line
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "request_id": getattr(record, "request_id", NO_REQUEST_ID),
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        log_data.update(context_fields(record))

        if record.exc_info:
            log_data["error"] = str(record.exc_info[1])
            log_data["traceback"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class KeyValueFormatter(logging.Formatter):
    """Human readable lines for local runs: message, then key=value context."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = context_fields(record)
        if not fields:
            return line
        first, sep, rest = line.partition("\n")
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{first} | {pairs}{sep}{rest}"


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install the root handler.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines if True, key=value text otherwise
    """
    numeric_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else KeyValueFormatter())
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger; the request id is added by the root handler.

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)
