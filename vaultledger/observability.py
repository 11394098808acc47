"""Structured Logging — JSON formatter and setup for ledger observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Ledger extra fields (operation, depositor, amount, payout) surfaced when present
    - JSON format for indexers, human-readable text for local runs
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = ("operation", "depositor", "amount", "payout")
_SETUP_MARKER = "_vaultledger_setup"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    fmt: str = "json",
    logger_name: str = "vaultledger",
    stream=None,
) -> logging.Handler:
    """Attach a handler to the vaultledger logger and return it.

    A handler installed by an earlier call on the same logger is replaced.
    """
    target = logging.getLogger(logger_name)
    for existing in list(target.handlers):
        if getattr(existing, _SETUP_MARKER, False):
            target.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    setattr(handler, _SETUP_MARKER, True)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    target.addHandler(handler)
    target.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
