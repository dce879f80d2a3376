"""
Logging configuration.

Standard library logging with a console formatter by default and a JSON
formatter for log shippers. Values passed through ``extra`` whose key looks
sensitive (password, token, secret, authorization, key) are redacted.

Usage:
    from backend.utils.logging import configure_logging

    configure_logging(level="INFO", json_logs=False)
    logger = logging.getLogger(__name__)
    logger.info("draft saved", extra={"owner_id": owner_id})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict

SENSITIVE_KEYS = ("password", "token", "secret", "authorization", "key")
REDACTED = "[REDACTED]"

# Attributes every LogRecord has; anything else came in through ``extra``.
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def _is_sensitive(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_KEYS)


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        name: value
        for name, value in record.__dict__.items()
        if name not in _RESERVED_ATTRS and not name.startswith("_")
    }


class RedactingFilter(logging.Filter):
    """Replace sensitive ``extra`` values before any handler sees them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in _extra_fields(record):
            if _is_sensitive(name):
                setattr(record, name, REDACTED)
        return True


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure root logging.

    Parameters
    ----------
    level : str
        Logging level name (e.g., "DEBUG", "INFO", "WARNING").
    json_logs : bool
        Emit one JSON object per line instead of the console format.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "redact": {"()": RedactingFilter},
            },
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {
                    "()": JsonFormatter,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "filters": ["redact"],
                    "level": level,
                }
            },
            "root": {
                "handlers": ["default"],
                "level": level,
            },
        }
    )


__all__ = ["configure_logging", "JsonFormatter", "RedactingFilter"]
