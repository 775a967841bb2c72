from __future__ import annotations  # Interview session domain models

import datetime as dt
import re
from typing import Any, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Difficulty = Literal["Easy", "Medium", "Hard"]
SessionStatus = Literal["in-progress", "completed"]

IN_PROGRESS: SessionStatus = "in-progress"
COMPLETED: SessionStatus = "completed"

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def utc_now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def new_id() -> str:
    return uuid4().hex


def _leading_number(value: Any) -> Any:  # "85%", "8/10", 7.6 -> number
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        match = _NUMBER_RE.search(value)
        if match:
            return float(match.group(0))
    return value


def clamp_score(value: Any, low: int, high: int) -> Any:
    value = _leading_number(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(max(low, min(high, round(value))))
    return value


class EvaluationSummary(BaseModel):  # Structured code-evaluation scores (0-100)
    overall_assessment: str = ""
    correctness: int = Field(ge=0, le=100)
    code_quality: int = Field(ge=0, le=100)
    efficiency: str = ""
    edge_case_handling: int = Field(ge=0, le=100)
    overall_rating: int = Field(ge=0, le=100)
    technical_skill: Optional[int] = Field(default=None, ge=0, le=100)
    problem_understanding: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator(
        "correctness",
        "code_quality",
        "edge_case_handling",
        "overall_rating",
        "technical_skill",
        "problem_understanding",
        mode="before",
    )
    @classmethod
    def _percent(cls, value: Any) -> Any:
        if value is None:
            return value
        return clamp_score(value, 0, 100)

    @field_validator("efficiency", "overall_assessment", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value


class EvaluationRecord(BaseModel):  # Model evaluation of a submitted solution
    summary: Optional[EvaluationSummary] = None
    raw: str = ""
    error: Optional[str] = None
    evaluated_at: str = Field(default_factory=utc_now)


class QuestionRecord(BaseModel):  # One question asked during the session
    model_config = ConfigDict(extra="forbid")

    skill: str = Field(min_length=1)
    difficulty: Difficulty
    question: str = Field(min_length=1)
    submitted_code: Optional[str] = None
    evaluation: Optional[EvaluationRecord] = None
    notes: Optional[str] = None


class QuestionUpdate(BaseModel):  # Partial fields accepted by updateQuestion
    model_config = ConfigDict(extra="forbid")

    submitted_code: Optional[str] = None
    notes: Optional[str] = None
    evaluation: Optional[EvaluationRecord] = None


class FinalAssessment(BaseModel):  # Interviewer's closing assessment (scores 1-10)
    technical_proficiency: int = Field(ge=1, le=10)
    problem_solving: int = Field(ge=1, le=10)
    code_quality: int = Field(ge=1, le=10)
    overall: int = Field(ge=1, le=10)
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    comments: str = ""

    @field_validator("strengths", "improvements")
    @classmethod
    def _drop_blank(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if item and item.strip()]


class InterviewSession(BaseModel):  # Full interview record
    id: str = Field(default_factory=new_id)
    version: int = 0
    candidate_id: str
    interviewer_id: str
    created_at: str = Field(default_factory=utc_now)
    status: SessionStatus = IN_PROGRESS
    questions: List[QuestionRecord] = Field(default_factory=list)
    final_assessment: Optional[FinalAssessment] = None

    @model_validator(mode="after")
    def _assessment_iff_completed(self) -> "InterviewSession":
        if (self.status == COMPLETED) != (self.final_assessment is not None):
            raise ValueError("final_assessment must be present exactly when status is 'completed'")
        return self

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED


__all__ = [
    "COMPLETED",
    "Difficulty",
    "EvaluationRecord",
    "EvaluationSummary",
    "FinalAssessment",
    "IN_PROGRESS",
    "InterviewSession",
    "QuestionRecord",
    "QuestionUpdate",
    "SessionStatus",
    "clamp_score",
    "new_id",
    "utc_now",
]
