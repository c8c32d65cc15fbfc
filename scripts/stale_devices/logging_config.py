"""Structured JSON logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

_EXTRA_FIELDS = ("source", "partition", "records", "duration_s", "run_id")

# Client libraries that log every token request and HTTP round trip at DEBUG/INFO
LIBRARY_LOGGERS = ("msal", "urllib3", "ldap3")


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        # Merge extra fields attached by sources and the audit run
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, default=str)


def configure_logging(level: str = "INFO", library_level: str = "WARNING") -> logging.Handler:
    """Send stale_devices and directory/Graph client logs to stderr as JSON.

    Client library loggers get their own, usually quieter, level so a
    debug run of the audit does not dump every token refresh and page fetch.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger("stale_devices")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False

    for name in LIBRARY_LOGGERS:
        lib = logging.getLogger(name)
        lib.setLevel(getattr(logging, library_level.upper(), logging.WARNING))
        lib.handlers.clear()
        lib.addHandler(handler)
        lib.propagate = False
    return handler
