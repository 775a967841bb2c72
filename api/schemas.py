"""Pydantic schemas for the interview tracker API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field

from interview_session import EvaluationRecord


class CreateSessionReq(BaseModel):
    candidate_id: str = Field(validation_alias=AliasChoices("candidate_id", "candidateId"))


class PatchSessionReq(BaseModel):
    action: str
    data: Optional[Dict[str, Any]] = None


class SetActiveReq(BaseModel):
    is_active: Optional[bool] = Field(default=None, validation_alias=AliasChoices("isActive", "is_active"))


# Completion-backed operations validate their own required fields.

class GenerateQuestionReq(BaseModel):
    skills: Union[List[str], str, None] = None
    difficulty: Optional[str] = None
    level: Optional[str] = None
    format: Optional[str] = None


class EvaluateCodeReq(BaseModel):
    question: Optional[str] = None
    code: Optional[str] = None
    skills: Union[List[str], str, None] = None


class FollowUpReq(EvaluateCodeReq):
    evaluation: Any = None


class GenerateAssessmentReq(BaseModel):
    name: Optional[str] = None
    position: Optional[str] = None
    skills: Union[List[str], str, None] = None
    question_evaluations: Union[str, List[str], None] = Field(
        default=None, validation_alias=AliasChoices("question_evaluations", "questionEvaluations")
    )


class QuestionResp(BaseModel):
    question: str


class EvaluationResp(BaseModel):
    evaluation: EvaluationRecord
