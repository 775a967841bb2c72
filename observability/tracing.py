"""Simple span helper for timing completion calls."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from .logger import log_event


@contextmanager
def span(kind: str, session_id: Optional[str] = None, **fields: Any) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and log it; callers may add fields to the yielded dict."""

    start = time.time()
    extra: Dict[str, Any] = dict(fields)
    outcome = "ok"
    try:
        yield extra
    except Exception:
        outcome = "error"
        raise
    finally:
        elapsed_ms = int((time.time() - start) * 1000)
        extra.setdefault("outcome", outcome)
        log_event(kind, session_id, ms=elapsed_ms, **extra)


__all__ = ["span"]
