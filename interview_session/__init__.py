from __future__ import annotations  # Re-export interview session public API

from .models import (
    COMPLETED,
    IN_PROGRESS,
    EvaluationRecord,
    EvaluationSummary,
    FinalAssessment,
    InterviewSession,
    QuestionRecord,
    QuestionUpdate,
)
from .state_machine import ACTIONS, add_question, apply_action, complete_interview, update_question
from .store import SessionStore

__all__ = [
    "ACTIONS",
    "COMPLETED",
    "IN_PROGRESS",
    "EvaluationRecord",
    "EvaluationSummary",
    "FinalAssessment",
    "InterviewSession",
    "QuestionRecord",
    "QuestionUpdate",
    "SessionStore",
    "add_question",
    "apply_action",
    "complete_interview",
    "update_question",
]
