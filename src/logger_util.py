"""
Event logging for the Discord interaction endpoint.

Each call to log() writes one JSON line keyed by event_type (e.g.
"signature_verification_failed", "session_resolved") on the
"interaction-endpoint" logger, whose threshold comes from LOG_LEVEL.
Components built without a logger fall back to get_discard_logger(), so the
endpoint, router and session providers stay silent unless one is passed in.
"""

import json
import logging
import os
import sys
import time
from typing import Any

LOGGER_NAME = "interaction-endpoint"
DISCARD_LOGGER_NAME = "interaction-endpoint.discard"


class _StdoutHandler(logging.StreamHandler):
    """StreamHandler that uses current sys.stdout at emit time (for pytest capsys capture)."""

    def __init__(self) -> None:
        super().__init__(sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stdout
        super().emit(record)


def _setup() -> None:
    """Configure logger to output JSON to stdout (message only)."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    handler = _StdoutHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    discard = logging.getLogger(DISCARD_LOGGER_NAME)
    discard.addHandler(logging.NullHandler())
    discard.propagate = False


_setup()


def get_logger() -> logging.Logger:
    """Return the configured interaction endpoint logger."""
    return logging.getLogger(LOGGER_NAME)


def get_discard_logger() -> logging.Logger:
    """Return a logger that drops every record."""
    return logging.getLogger(DISCARD_LOGGER_NAME)


def log(
    logger: logging.Logger,
    level: str,
    event_type: str,
    data: dict,
    *,
    service: str = "interaction-endpoint",
) -> None:
    """Log structured JSON for CloudWatch."""
    log_entry: dict[str, Any] = {
        "level": level,
        "event_type": event_type,
        "service": service,
        "timestamp": time.time(),
        **data,
    }
    msg = json.dumps(log_entry, default=str, ensure_ascii=False)
    log_method = logger.warning if level.upper() == "WARN" else getattr(logger, level.lower(), logger.info)
    log_method(msg)
