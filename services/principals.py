"""Administration of interviewer and admin principals."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from errors import ConcurrentModification, NotFound, ValidationError
from interview_session.models import utc_now
from observability import log_event
from principal_management import ADMIN, INTERVIEWER, Principal, PrincipalCreate, PrincipalStore
from storage import ConflictError

from .access import AccessGuard
from .payloads import parse_payload

logger = logging.getLogger(__name__)


class PrincipalService:
    def __init__(self, principals: PrincipalStore, guard: AccessGuard) -> None:
        self.principals = principals
        self.guard = guard

    def resolve(self, principal_id: Optional[str]) -> Optional[Principal]:
        """Active principal for ``principal_id``; unknown or inactive ids resolve to ``None``."""

        if not principal_id:
            return None
        return self.principals.active(principal_id)

    def list_interviewers(self, principal: Principal) -> List[Principal]:
        self.guard.require_admin(principal, "list_interviewers")
        return self.principals.with_role(INTERVIEWER)

    def create_interviewer(self, principal: Principal, payload: Any) -> Principal:
        self.guard.require_admin(principal, "create_interviewer")
        data = parse_payload(PrincipalCreate, payload, what="user")
        return self._create(data, created_by=principal.id)

    def set_active(self, principal: Principal, principal_id: str, is_active: Any) -> Principal:
        """Soft-activate or deactivate a principal; records are never deleted."""

        self.guard.require_admin(principal, "set_active")
        if not isinstance(is_active, bool):
            raise ValidationError("Missing required field: isActive", details="isActive must be a boolean")
        target = self.principals.get(principal_id)
        if target is None:
            raise NotFound("User not found")
        updated = target.model_copy(update={"is_active": is_active, "updated_at": utc_now()})
        try:
            saved = self.principals.save(updated)
        except ConflictError as exc:
            raise ConcurrentModification("User was modified concurrently") from exc
        log_event("principal_updated", principal=principal.id, action="set_active", status=saved.is_active)
        return saved

    def bootstrap_admin(self, payload: Any) -> Principal:
        """Create the first admin; refused once any admin exists."""

        data = parse_payload(PrincipalCreate, payload, what="admin")
        existing = self.principals.with_role(ADMIN)
        if existing:
            raise ValidationError("Admin user already exists", details=existing[0].email)
        return self._create(data.model_copy(update={"role": ADMIN}), created_by=None)

    def _create(self, data: PrincipalCreate, *, created_by: Optional[str]) -> Principal:
        if self.principals.by_email(data.email) is not None:
            raise ValidationError("User already exists", details=data.email)
        principal = self.principals.create(Principal(**data.model_dump()))
        log_event("principal_created", principal=created_by or principal.id, action=principal.role)
        logger.info("Principal %s (%s) created", principal.id, principal.role)
        return principal


__all__ = ["PrincipalService"]
