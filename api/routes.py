"""FastAPI routes for candidates, interview sessions, users and completion helpers."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import StreamingResponse

from api.schemas import (
    CreateSessionReq,
    EvaluateCodeReq,
    EvaluationResp,
    FollowUpReq,
    GenerateAssessmentReq,
    GenerateQuestionReq,
    PatchSessionReq,
    QuestionResp,
    SetActiveReq,
)
from candidate_management import Candidate
from errors import InterviewError, Unauthorized
from interview_session import InterviewSession
from principal_management import Principal
from services.assistant import AssessmentResult, AssistantService, FollowUpResult, SessionAssessment
from services.principals import PrincipalService
from services.sessions import AssessmentDraft, InterviewService, SessionView


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class AuthProvider:  # Resolve the calling principal from a request header
    def __init__(self, principals: PrincipalService, header: str) -> None:
        self._principals = principals
        self._header = header

    def __call__(self, request: Request) -> Optional[Principal]:
        return self._principals.resolve(request.headers.get(self._header))


def current_principal(request: Request) -> Principal:
    principal = request.app.state.auth(request)
    if principal is None:
        raise Unauthorized()
    return principal


def interview_service(request: Request) -> InterviewService:
    return request.app.state.interviews


def principal_service(request: Request) -> PrincipalService:
    return request.app.state.principals


def assistant_service(request: Request) -> AssistantService:
    return request.app.state.assistant


# Candidates

@router.get("/candidates", response_model=List[Candidate])
def list_candidates(
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> List[Candidate]:
    return interviews.list_candidates(principal)


@router.post("/candidates", response_model=Candidate, status_code=201)
def create_candidate(
    payload: Dict[str, Any] = Body(...),
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> Candidate:
    return interviews.create_candidate(principal, payload)


@router.get("/candidates/{candidate_id}", response_model=Candidate)
def get_candidate(
    candidate_id: str,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> Candidate:
    return interviews.get_candidate(principal, candidate_id)


@router.get("/candidates/{candidate_id}/sessions", response_model=List[InterviewSession])
def candidate_sessions(
    candidate_id: str,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> List[InterviewSession]:
    return interviews.candidate_sessions(principal, candidate_id)


# Interview sessions

@router.get("/interview-sessions", response_model=List[InterviewSession])
def list_sessions(
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> List[InterviewSession]:
    return interviews.list_sessions(principal)


@router.post("/interview-sessions", response_model=InterviewSession, status_code=201)
def create_session(
    req: CreateSessionReq,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> InterviewSession:
    return interviews.create_session(principal, req.candidate_id)


@router.get("/interview-sessions/{session_id}", response_model=SessionView)
def get_session(
    session_id: str,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> SessionView:
    return interviews.populate(interviews.get_session(principal, session_id))


@router.patch("/interview-sessions/{session_id}", response_model=InterviewSession)
def patch_session(
    session_id: str,
    req: PatchSessionReq,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> InterviewSession:
    return interviews.patch_session(principal, session_id, req.action, req.data)


@router.get("/interview-sessions/{session_id}/assessment-draft", response_model=AssessmentDraft)
def assessment_draft(
    session_id: str,
    principal: Principal = Depends(current_principal),
    interviews: InterviewService = Depends(interview_service),
) -> AssessmentDraft:
    return interviews.assessment_draft(principal, session_id)


@router.post("/interview-sessions/{session_id}/questions/{index}/evaluate", response_model=InterviewSession)
def evaluate_session_question(
    session_id: str,
    index: int,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> InterviewSession:
    return assistant.evaluate_session_question(principal, session_id, index)


@router.post("/interview-sessions/{session_id}/assessment/generate", response_model=SessionAssessment)
def generate_session_assessment(
    session_id: str,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> SessionAssessment:
    return assistant.generate_session_assessment(principal, session_id)


# Users

@router.get("/users", response_model=List[Principal])
def list_users(
    principal: Principal = Depends(current_principal),
    principals: PrincipalService = Depends(principal_service),
) -> List[Principal]:
    return principals.list_interviewers(principal)


@router.post("/users", response_model=Principal, status_code=201)
def create_user(
    payload: Dict[str, Any] = Body(...),
    principal: Principal = Depends(current_principal),
    principals: PrincipalService = Depends(principal_service),
) -> Principal:
    return principals.create_interviewer(principal, payload)


@router.patch("/users/{user_id}", response_model=Principal)
def set_user_active(
    user_id: str,
    req: SetActiveReq,
    principal: Principal = Depends(current_principal),
    principals: PrincipalService = Depends(principal_service),
) -> Principal:
    return principals.set_active(principal, user_id, req.is_active)


@router.post("/admin/init", response_model=Principal, status_code=201)
def init_admin(
    payload: Dict[str, Any] = Body(...),
    principals: PrincipalService = Depends(principal_service),
) -> Principal:
    return principals.bootstrap_admin(payload)


# Completion helpers

@router.post("/ai/generate-question", response_model=QuestionResp)
def generate_question(
    req: GenerateQuestionReq,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> QuestionResp:
    text = assistant.generate_question(req.skills, req.difficulty, req.level, req.format)
    return QuestionResp(question=text)


@router.post("/ai/evaluate-code", response_model=EvaluationResp)
def evaluate_code(
    req: EvaluateCodeReq,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> EvaluationResp:
    return EvaluationResp(evaluation=assistant.evaluate_code(req.question, req.code, req.skills))


@router.post("/ai/generate-assessment", response_model=AssessmentResult)
def generate_assessment(
    req: GenerateAssessmentReq,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> AssessmentResult:
    return assistant.generate_assessment(req.name, req.position, req.skills, req.question_evaluations)


@router.post("/ai/generate-follow-up", response_model=FollowUpResult)
def generate_follow_up(
    req: FollowUpReq,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> FollowUpResult:
    return assistant.generate_follow_ups(req.question, req.code, req.evaluation, req.skills)


@router.post("/ai/stream-evaluation")
def stream_evaluation(
    req: EvaluateCodeReq,
    principal: Principal = Depends(current_principal),
    assistant: AssistantService = Depends(assistant_service),
) -> StreamingResponse:
    """Newline-delimited JSON: ``chunk`` lines as text arrives, then one ``result`` line."""

    stream = assistant.stream_evaluation(req.question, req.code, req.skills)

    def _lines() -> Iterator[str]:
        try:
            for chunk in stream:
                yield json.dumps({"type": "chunk", "text": chunk}, ensure_ascii=False) + "\n"
        except InterviewError as exc:
            logger.warning("Evaluation stream failed: %s", exc.message)
            yield json.dumps({"type": "error", **exc.envelope()}, ensure_ascii=False) + "\n"
            return
        record = stream.result.model_dump(mode="json") if stream.result is not None else None
        yield json.dumps({"type": "result", "evaluation": record}, ensure_ascii=False) + "\n"

    return StreamingResponse(
        _lines(),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
