"""Error taxonomy shared by the interview services and the HTTP layer."""
from __future__ import annotations

from typing import Optional

import pydantic


class InterviewError(Exception):
    """Base class for failures surfaced to API callers."""

    status_code = 500
    label = "Internal error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[str] = None) -> None:
        super().__init__(message or self.label)
        self.message = message or self.label
        self.details = details

    def envelope(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(InterviewError):
    status_code = 400
    label = "Missing or malformed input"


class Unauthorized(InterviewError):
    status_code = 401
    label = "Unauthorized"


class Forbidden(InterviewError):
    status_code = 403
    label = "Forbidden"


class NotFound(InterviewError):
    status_code = 404
    label = "Not found"


class InvalidState(InterviewError):
    status_code = 409
    label = "Operation not allowed in the current session state"


class ConcurrentModification(InterviewError):
    status_code = 409
    label = "Session was modified concurrently"


class UpstreamFailure(InterviewError):
    status_code = 502
    label = "Completion service failed"


def describe_validation(exc: pydantic.ValidationError) -> str:
    """Flatten pydantic errors to ``field: message`` pairs for the envelope."""

    parts = []
    for err in exc.errors():
        loc = ".".join(str(item) for item in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


__all__ = [
    "ConcurrentModification",
    "Forbidden",
    "InterviewError",
    "InvalidState",
    "NotFound",
    "Unauthorized",
    "UpstreamFailure",
    "ValidationError",
    "describe_validation",
]
