"""Session and candidate operations composed from the guard and the state machine."""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from candidate_management import Candidate, CandidateCreate, CandidateStore
from errors import ConcurrentModification, InterviewError, NotFound, ValidationError
from interview_session import (
    EvaluationRecord,
    FinalAssessment,
    InterviewSession,
    QuestionUpdate,
    SessionStore,
    apply_action,
    update_question,
)
from observability import log_event
from principal_management import Principal, PrincipalStore
from storage import ConflictError

from .access import AccessGuard, Decision
from .payloads import parse_payload
from .scoring import ScoreAggregate, aggregate, seed_assessment

logger = logging.getLogger(__name__)

Transition = Callable[[InterviewSession], InterviewSession]


class InterviewerSummary(BaseModel):  # Interviewer fields exposed alongside a session
    id: str
    name: str
    email: str
    department: str


class SessionView(InterviewSession):  # Session with its references resolved
    candidate: Optional[Candidate] = None
    interviewer: Optional[InterviewerSummary] = None


class AssessmentDraft(BaseModel):  # Aggregated scores and the assessment seeded from them
    scores: ScoreAggregate
    assessment: FinalAssessment


class InterviewService:
    """Reads and writes sessions and candidates on behalf of a principal.

    Every session write is a read-modify-write checked against the stored
    version. On a version conflict the session is re-read and the same
    transition applied again, up to ``max_retries`` more times, so two
    interviewers editing different questions of one session both land.
    """

    def __init__(
        self,
        candidates: CandidateStore,
        sessions: SessionStore,
        principals: PrincipalStore,
        guard: AccessGuard,
        *,
        max_retries: int = 3,
    ) -> None:
        self.candidates = candidates
        self.sessions = sessions
        self.principals = principals
        self.guard = guard
        self._max_retries = max_retries

    # Candidates

    def list_candidates(self, principal: Principal) -> List[Candidate]:
        visible = self.guard.visible_candidate_ids(principal)
        if visible is None:
            return self.candidates.list_all()
        return self.candidates.get_many(visible)

    def create_candidate(self, principal: Principal, payload: Any) -> Candidate:
        data = parse_payload(CandidateCreate, payload, what="candidate")
        candidate = self.candidates.register(data)
        logger.info("Candidate %s created by %s", candidate.id, principal.id)
        return candidate

    def get_candidate(self, principal: Principal, candidate_id: str) -> Candidate:
        candidate = self.candidates.get(candidate_id)
        if candidate is None:
            raise NotFound("Candidate not found")
        self.guard.require_candidate(principal, candidate_id)
        return candidate

    def candidate_sessions(self, principal: Principal, candidate_id: str) -> List[InterviewSession]:
        self.get_candidate(principal, candidate_id)
        return [
            session
            for session in self.sessions.for_candidate(candidate_id)
            if self.guard.decide_session(principal, session) is Decision.ALLOW
        ]

    # Sessions

    def list_sessions(self, principal: Principal) -> List[InterviewSession]:
        return self.guard.visible_sessions(principal)

    def create_session(self, principal: Principal, candidate_id: str) -> InterviewSession:
        if not candidate_id:
            raise ValidationError("Missing required field: candidate_id")
        if self.candidates.get(candidate_id) is None:
            raise NotFound("Candidate not found")
        session = self.sessions.create(
            InterviewSession(candidate_id=candidate_id, interviewer_id=principal.id)
        )
        log_event("session_created", session.id, principal=principal.id)
        return session

    def get_session(self, principal: Principal, session_id: str) -> InterviewSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("Interview session not found")
        return self.guard.require_session(principal, session)

    def populate(self, session: InterviewSession) -> SessionView:
        """Resolve the candidate and interviewer references of ``session``."""

        candidate = self.candidates.get(session.candidate_id)
        interviewer = self.principals.get(session.interviewer_id)
        summary = None
        if interviewer is not None:
            summary = InterviewerSummary(
                id=interviewer.id,
                name=interviewer.name,
                email=interviewer.email,
                department=interviewer.department,
            )
        return SessionView(**session.model_dump(), candidate=candidate, interviewer=summary)

    def patch_session(self, principal: Principal, session_id: str, action: str, data: Any) -> InterviewSession:
        index = data.get("question_index") if isinstance(data, dict) else None
        return self._mutate(
            principal,
            session_id,
            lambda session: apply_action(session, action, data),
            action=action,
            index=index,
        )

    def update_question(
        self,
        principal: Principal,
        session_id: str,
        index: int,
        update: QuestionUpdate,
    ) -> InterviewSession:
        return self._mutate(
            principal,
            session_id,
            lambda session: update_question(session, index, update),
            action="updateQuestion",
            index=index,
        )

    def record_evaluation(
        self,
        principal: Principal,
        session_id: str,
        index: int,
        evaluated_code: str,
        evaluation: EvaluationRecord,
    ) -> InterviewSession:
        """Store ``evaluation`` on question ``index`` if its code is still ``evaluated_code``."""

        def transition(session: InterviewSession) -> InterviewSession:
            questions = session.questions
            if not session.is_completed and 0 <= index < len(questions):
                if questions[index].submitted_code != evaluated_code:
                    raise ConcurrentModification(
                        "Submitted code changed during evaluation",
                        details=f"question {index}",
                    )
            return update_question(session, index, QuestionUpdate(evaluation=evaluation))

        return self._mutate(principal, session_id, transition, action="evaluateQuestion", index=index)

    def assessment_draft(self, principal: Principal, session_id: str) -> AssessmentDraft:
        session = self.get_session(principal, session_id)
        scores = aggregate(session.questions)
        return AssessmentDraft(scores=scores, assessment=seed_assessment(scores))

    def _mutate(
        self,
        principal: Principal,
        session_id: str,
        transition: Transition,
        *,
        action: str,
        index: Optional[int] = None,
    ) -> InterviewSession:
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            session = self.get_session(principal, session_id)
            try:
                updated = transition(session)
            except InterviewError as exc:
                log_event(
                    "transition_rejected",
                    session_id,
                    level=logging.WARNING,
                    principal=principal.id,
                    action=action,
                    index=index,
                    reason=exc.message,
                )
                raise
            try:
                saved = self.sessions.save(updated)
            except ConflictError as exc:
                logger.info("Session %s changed underneath %s (attempt %d/%d): %s", session_id, action, attempt, attempts, exc)
                continue
            except KeyError as exc:
                raise NotFound("Interview session not found") from exc
            log_event(
                "transition",
                session_id,
                principal=principal.id,
                action=action,
                index=index,
                status=saved.status,
            )
            return saved
        raise ConcurrentModification(details=f"gave up after {attempts} attempts")


__all__ = ["AssessmentDraft", "InterviewService", "InterviewerSummary", "SessionView"]
