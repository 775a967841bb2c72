"""Legal transitions of an interview session.

A session starts ``in-progress`` and moves to ``completed`` exactly once,
through ``completeInterview``. Every transition is a pure function: it
returns a new session and leaves its argument untouched, so a rejected
transition can never leave a half-applied change behind.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping

import pydantic

from errors import InvalidState, NotFound, ValidationError, describe_validation

from .models import (
    COMPLETED,
    FinalAssessment,
    InterviewSession,
    QuestionRecord,
    QuestionUpdate,
)

ADD_QUESTION = "addQuestion"
UPDATE_QUESTION = "updateQuestion"
COMPLETE_INTERVIEW = "completeInterview"

ACTIONS = (ADD_QUESTION, UPDATE_QUESTION, COMPLETE_INTERVIEW)


def _require_in_progress(session: InterviewSession, action: str) -> None:
    if session.is_completed:
        raise InvalidState(
            f"Cannot {action}: interview is completed",
            details=f"session {session.id} is {session.status}",
        )


def _schema_error(action: str, exc: pydantic.ValidationError) -> ValidationError:
    return ValidationError(f"Invalid data for {action}", details=describe_validation(exc))


def add_question(session: InterviewSession, question: QuestionRecord) -> InterviewSession:
    """Append ``question`` to the session."""

    _require_in_progress(session, ADD_QUESTION)
    questions: List[QuestionRecord] = [record.model_copy() for record in session.questions]
    questions.append(question.model_copy())
    return session.model_copy(update={"questions": questions})


def update_question(session: InterviewSession, index: int, update: QuestionUpdate) -> InterviewSession:
    """Merge the fields set on ``update`` into the question at ``index``.

    Only fields present in the update are touched; an explicit ``None``
    clears the field. Negative indexes are out of range.
    """

    _require_in_progress(session, UPDATE_QUESTION)
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValidationError("question_index must be an integer")
    if index < 0 or index >= len(session.questions):
        raise NotFound(
            "Question not found",
            details=f"index {index} outside 0..{len(session.questions) - 1}",
        )
    fields: Dict[str, Any] = {name: getattr(update, name) for name in update.model_fields_set}
    questions = [record.model_copy() for record in session.questions]
    questions[index] = questions[index].model_copy(update=fields)
    return session.model_copy(update={"questions": questions})


def complete_interview(session: InterviewSession, assessment: FinalAssessment) -> InterviewSession:
    """Store the final assessment and close the session."""

    _require_in_progress(session, COMPLETE_INTERVIEW)
    return session.model_copy(
        update={"status": COMPLETED, "final_assessment": assessment.model_copy()}
    )


def _apply_add(session: InterviewSession, data: Mapping[str, Any]) -> InterviewSession:
    _require_in_progress(session, ADD_QUESTION)
    try:
        question = QuestionRecord.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise _schema_error(ADD_QUESTION, exc) from exc
    return add_question(session, question)


def _apply_update(session: InterviewSession, data: Mapping[str, Any]) -> InterviewSession:
    _require_in_progress(session, UPDATE_QUESTION)
    fields = dict(data)
    if "question_index" not in fields:
        raise ValidationError("Missing required field: question_index")
    index = fields.pop("question_index")
    try:
        update = QuestionUpdate.model_validate(fields)
    except pydantic.ValidationError as exc:
        raise _schema_error(UPDATE_QUESTION, exc) from exc
    return update_question(session, index, update)


def _apply_complete(session: InterviewSession, data: Mapping[str, Any]) -> InterviewSession:
    _require_in_progress(session, COMPLETE_INTERVIEW)
    try:
        assessment = FinalAssessment.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise _schema_error(COMPLETE_INTERVIEW, exc) from exc
    return complete_interview(session, assessment)


_HANDLERS: Dict[str, Callable[[InterviewSession, Mapping[str, Any]], InterviewSession]] = {
    ADD_QUESTION: _apply_add,
    UPDATE_QUESTION: _apply_update,
    COMPLETE_INTERVIEW: _apply_complete,
}


def apply_action(session: InterviewSession, action: str, data: Any) -> InterviewSession:
    """Dispatch ``action`` with its payload; the entry point used by PATCH."""

    handler = _HANDLERS.get(action)
    if handler is None:
        raise ValidationError("Invalid action", details=f"expected one of {', '.join(ACTIONS)}")
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ValidationError(f"Invalid data for {action}", details="data must be an object")
    return handler(session, data)


__all__ = [
    "ACTIONS",
    "ADD_QUESTION",
    "COMPLETE_INTERVIEW",
    "UPDATE_QUESTION",
    "add_question",
    "apply_action",
    "complete_interview",
    "update_question",
]
