"""Domain event logging and completion timing for the interview tracker."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
