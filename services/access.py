"""Role and ownership checks for sessions and candidates.

Admins may read and write everything. An interviewer owns the sessions
that name them as interviewer, and may see a candidate only through one of
those sessions. Callers resolve existence first and consult the guard
second, so a missing record is reported as ``NotFound`` and an existing but
foreign one as ``Forbidden``.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Set

from errors import Forbidden
from interview_session import InterviewSession, SessionStore
from observability import log_event
from principal_management import Principal


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class AccessGuard:
    def __init__(self, sessions: SessionStore) -> None:
        self._sessions = sessions

    def decide_session(self, principal: Principal, session: InterviewSession) -> Decision:
        if principal.is_admin or session.interviewer_id == principal.id:
            return Decision.ALLOW
        return Decision.DENY

    def decide_candidate(self, principal: Principal, candidate_id: str) -> Decision:
        if principal.is_admin:
            return Decision.ALLOW
        reachable = self.visible_candidate_ids(principal) or set()
        return Decision.ALLOW if candidate_id in reachable else Decision.DENY

    def require_session(self, principal: Principal, session: InterviewSession) -> InterviewSession:
        if self.decide_session(principal, session) is Decision.DENY:
            self._deny(principal, "session", session.id, session_id=session.id)
        return session

    def require_candidate(self, principal: Principal, candidate_id: str) -> None:
        if self.decide_candidate(principal, candidate_id) is Decision.DENY:
            self._deny(principal, "candidate", candidate_id)

    def require_admin(self, principal: Principal, operation: str) -> None:
        if not principal.is_admin:
            self._deny(principal, "admin", operation)

    def visible_sessions(self, principal: Principal) -> List[InterviewSession]:
        if principal.is_admin:
            return self._sessions.find()
        return self._sessions.for_interviewer(principal.id)

    def visible_candidate_ids(self, principal: Principal) -> Optional[Set[str]]:
        """Candidate ids reachable by ``principal``; ``None`` means unrestricted."""

        if principal.is_admin:
            return None
        return {session.candidate_id for session in self._sessions.for_interviewer(principal.id)}

    def _deny(self, principal: Principal, target: str, target_id: str, *, session_id: Optional[str] = None) -> None:
        log_event(
            "access_denied",
            session_id,
            principal=principal.id,
            reason=f"{principal.role} may not access {target} {target_id}",
        )
        raise Forbidden(f"Not allowed to access this {target}")


__all__ = ["AccessGuard", "Decision"]
