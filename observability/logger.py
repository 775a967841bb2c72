"""Domain event logging for interview sessions, principals and completions.

Each event is one record on the ``interview`` logger. The console shows it
as a ``kind=... key=value`` line; with ``ENABLE_FILE_LOGS`` set the same
record is also written as a JSON line to a rotating file.
"""
from __future__ import annotations

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Dict, Optional

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENABLE_FILE_LOGS = os.getenv("ENABLE_FILE_LOGS", "0") in ("1", "true", "True")
LOG_FILE = os.getenv("LOG_FILE", "logs/interview.log")
LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "5242880"))
LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))

_logger = logging.getLogger("interview")
_logger.setLevel(LOG_LEVEL)
_logger.propagate = False

# Fields shown on the console line, in this order
_CONSOLE_FIELDS = (
    "principal",
    "action",
    "index",
    "outcome",
    "reason",
    "template",
    "strategy",
    "normalized",
    "status",
    "ms",
)


class _EventJsonFormatter(logging.Formatter):  # One JSON object per event
    def format(self, record: logging.LogRecord) -> str:
        event: Dict[str, Any] = getattr(record, "event", None) or {"kind": "message", "text": record.getMessage()}
        return json.dumps(event, ensure_ascii=False, default=str)


def _ensure_handlers() -> None:
    if _logger.handlers:
        return

    console = logging.StreamHandler(stream=sys.stdout)
    console.setFormatter(
        logging.Formatter("[%(asctime)s] %(levelname)s %(name)s :: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )
    _logger.addHandler(console)

    if not ENABLE_FILE_LOGS:
        return

    log_dir = os.path.dirname(LOG_FILE)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    events_file = logging.handlers.RotatingFileHandler(
        LOG_FILE,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
    )
    events_file.setFormatter(_EventJsonFormatter())
    _logger.addHandler(events_file)


def _console_line(event: Dict[str, Any]) -> str:
    line = f"kind={event['kind']}"
    if event.get("session_id"):
        line += f" session={event['session_id']}"
    extras = [f"{key}={event[key]}" for key in _CONSOLE_FIELDS if key in event]
    return " ".join([line, *extras])


def log_event(kind: str, session_id: Optional[str] = None, *, level: int = logging.INFO, **fields: Any) -> None:
    """Log a domain event such as ``transition`` or ``access_denied``."""

    _ensure_handlers()
    event: Dict[str, Any] = {
        "ts": time.time(),
        "trace": str(uuid.uuid4()),
        "kind": kind,
        "session_id": session_id,
        **fields,
    }
    _logger.log(level, _console_line(event), extra={"event": event})


__all__ = ["log_event"]
