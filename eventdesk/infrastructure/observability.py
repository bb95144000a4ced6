"""Structured Logging: JSON and key=value formatters, installed once per process.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Record extras (entity_kind, entity_id, error_code, ...) surfaced when present,
      in both formats
    - setup_logging replaces its own handler on repeat calls (one app per test
      builds its own lifespan) instead of stacking duplicates

Design Decisions:
    - Hand-rolled formatters on stdlib logging: the extras are a short fixed list
"""

import logging
import json
from datetime import datetime, timezone

EXTRA_KEYS = (
    "entity_kind", "entity_id", "error_code", "operation",
    "username", "file_name", "line_number", "path",
)

_HANDLER_NAME = "eventdesk"


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_KEYS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable line with extras appended as key=value pairs."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += " [" + " ".join(f"{k}={v}" for k, v in extras.items()) + "]"
        return line


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the EventDesk handler on the root logger."""
    for existing in list(logging.root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            logging.root.removeHandler(existing)
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
