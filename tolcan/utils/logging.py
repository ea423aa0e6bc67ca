"""
Logging setup for tolcan.

Library modules only ask for loggers (`get_logger(__name__)`) and attach
structured fields through `extra=`; rendering is left to whoever calls
`configure_logging`, normally the application or the bundled CLI.

Two renderings are available:
- console: `time | LEVEL | logger | message key=value ...`
- JSON: one object per line with the same fields promoted to keys

Usage:
    from tolcan.utils.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_logs=True)
    log = get_logger(__name__)
    log.debug("Executing statement", extra={"sql": "SELECT 1", "params": 0})
"""

from __future__ import annotations

import json
import logging
import logging.config
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
    ).__dict__
) | {"message", "asctime", "extra"}


def _structured_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = {
        key: value for key, value in record.__dict__.items() if key not in _RESERVED_ATTRS
    }
    nested = getattr(record, "extra", None)
    if isinstance(nested, dict):
        fields.update(nested)
    return fields


def _json_formatter(record: logging.LogRecord) -> str:
    """Render a log record as one JSON line."""
    payload: Dict[str, Any] = {
        "level": record.levelname,
        "logger": record.name,
        "message": record.getMessage(),
        **_structured_fields(record),
    }
    if record.exc_info:
        payload["exc_info"] = logging.Formatter().formatException(record.exc_info)
    if record.stack_info:
        payload["stack_info"] = record.stack_info
    return json.dumps(payload, default=str)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        return _json_formatter(record)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines with structured fields appended as key=value."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        line = super().format(record)
        fields = _structured_fields(record)
        if not fields:
            return line
        head, sep, tail = line.partition("\n")
        suffix = " ".join(f"{key}={value!r}" for key, value in fields.items())
        return f"{head} {suffix}{sep}{tail}"


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Install one stderr handler on the root logger.

    Parameters
    ----------
    level : str
        Level name. Statement text is only logged at DEBUG.
    json_logs : bool
        Emit JSON lines instead of console lines.

    Loggers created before this call (asyncpg's included) stay enabled.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "()": ConsoleFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["stderr"], "level": level},
        }
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["ConsoleFormatter", "JsonFormatter", "configure_logging", "get_logger"]
