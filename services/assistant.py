"""Completion-backed interview assistance.

Question generation returns model text as-is. Everything else asks the
model for a JSON record, runs the reply through the response extractor and
validates the expected shape. A reply that cannot be read as that shape is
kept as raw text with ``None`` in place of the structured value; the caller
decides how to present it. Timeouts on these calls take the same path.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterator, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator, model_validator

from config import CODE_EVALUATION, FINAL_ASSESSMENT, FOLLOW_UP, QUESTION_GENERATION
from errors import InvalidState, NotFound, UpstreamFailure, ValidationError
from interview_session import (
    EvaluationRecord,
    EvaluationSummary,
    FinalAssessment,
    InterviewSession,
    QuestionRecord,
)
from interview_session.models import clamp_score
from llm_gateway import CompletionClient, LlmGatewayError, LlmTimeoutError
from observability import log_event
from principal_management import Principal
from response_extraction import Extraction, extract, validate_shape

from .scoring import ScoreAggregate, aggregate, seed_assessment
from .sessions import InterviewService

logger = logging.getLogger(__name__)

DIFFICULTIES = ("Easy", "Medium", "Hard")

_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def _split_items(value: Any) -> Any:  # "- a\n- b" -> ["a", "b"]
    if isinstance(value, str):
        items = [_BULLET_RE.sub("", line).strip() for line in value.splitlines()]
        return [item for item in items if item]
    return value


class FollowUpQuestion(BaseModel):
    question: str = Field(min_length=1)
    focus: str = ""
    difficulty: Optional[str] = None


_FOLLOW_UPS = TypeAdapter(List[FollowUpQuestion])


class FollowUpResult(BaseModel):
    follow_up_questions: Optional[List[FollowUpQuestion]] = None
    raw: str = ""
    error: Optional[str] = None


class GeneratedAssessment(BaseModel):
    """Assessment fields as drafted by the model; every field is optional."""

    technical_proficiency: Optional[int] = Field(
        default=None, ge=1, le=10, validation_alias=AliasChoices("technical_proficiency", "technicalProficiency")
    )
    problem_solving: Optional[int] = Field(
        default=None, ge=1, le=10, validation_alias=AliasChoices("problem_solving", "problemSolving")
    )
    code_quality: Optional[int] = Field(
        default=None, ge=1, le=10, validation_alias=AliasChoices("code_quality", "codeQuality")
    )
    overall: Optional[int] = Field(
        default=None, ge=1, le=10, validation_alias=AliasChoices("overall", "overall_score", "overallScore")
    )
    strengths: Optional[List[str]] = Field(
        default=None, validation_alias=AliasChoices("strengths", "areas_of_strength", "areasOfStrength")
    )
    improvements: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("improvements", "areas_for_improvement", "areasForImprovement"),
    )
    comments: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("comments", "summary_comments", "summaryComments")
    )

    @field_validator("technical_proficiency", "problem_solving", "code_quality", "overall", mode="before")
    @classmethod
    def _score(cls, value: Any) -> Any:
        if value is None:
            return value
        return clamp_score(value, 1, 10)

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def _items(cls, value: Any) -> Any:
        return _split_items(value)

    @model_validator(mode="after")
    def _not_empty(self) -> "GeneratedAssessment":
        if not self.model_fields_set:
            raise ValueError("no assessment fields present")
        return self


class AssessmentResult(BaseModel):
    assessment: Optional[GeneratedAssessment] = None
    raw: str = ""
    error: Optional[str] = None


class SessionAssessment(BaseModel):  # Model draft merged over the aggregated seed
    assessment: FinalAssessment
    scores: ScoreAggregate
    source: Literal["model", "seed"]
    raw: str = ""
    error: Optional[str] = None


class EvaluationStream:
    """Iterator over evaluation text chunks.

    Once the iterator is exhausted ``result`` holds the evaluation record
    extracted from the assembled text.
    """

    def __init__(self, chunks: Iterator[str], finish: Callable[[str, Optional[str]], EvaluationRecord]) -> None:
        self._chunks = chunks
        self._finish = finish
        self._parts: List[str] = []
        self.result: Optional[EvaluationRecord] = None

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def __iter__(self) -> Iterator[str]:
        try:
            for chunk in self._chunks:
                self._parts.append(chunk)
                yield chunk
        except LlmTimeoutError as exc:
            logger.warning("Evaluation stream timed out after %d chars: %s", len(self.text), exc)
            self.result = self._finish(self.text, str(exc))
            return
        except LlmGatewayError as exc:
            raise UpstreamFailure(details=str(exc)) from exc
        self.result = self._finish(self.text, None)


def _require_text(**fields: Any) -> None:
    missing = [name for name, value in fields.items() if not isinstance(value, str) or not value.strip()]
    if missing:
        raise ValidationError("Missing required fields", details=", ".join(missing))


def _require_skills(skills: Any) -> List[str]:
    if isinstance(skills, str):
        skills = [part.strip() for part in skills.split(",")]
    if not isinstance(skills, (list, tuple)):
        raise ValidationError("Missing required fields", details="skills")
    cleaned = [str(skill).strip() for skill in skills if str(skill).strip()]
    if not cleaned:
        raise ValidationError("Missing required fields", details="skills")
    return cleaned


def _evaluation_text(evaluation: Any) -> str:
    if evaluation is None:
        return "No evaluation available"
    if isinstance(evaluation, BaseModel):
        return evaluation.model_dump_json(exclude_none=True)
    if isinstance(evaluation, (dict, list)):
        return json.dumps(evaluation, ensure_ascii=False)
    return str(evaluation)


def render_question_evaluations(questions: Sequence[QuestionRecord]) -> str:
    """Plain-text digest of a session's questions for the final-assessment prompt."""

    blocks: List[str] = []
    for number, record in enumerate(questions, start=1):
        lines = [f"Question {number} ({record.skill}, {record.difficulty}):", record.question.strip(), ""]
        summary = record.evaluation.summary if record.evaluation else None
        if summary is not None:
            lines.extend(
                [
                    "Evaluation:",
                    f"Correctness: {summary.correctness}%",
                    f"Code Quality: {summary.code_quality}%",
                    f"Edge Case Handling: {summary.edge_case_handling}%",
                    f"Efficiency: {summary.efficiency or 'n/a'}",
                    f"Overall Rating: {summary.overall_rating}%",
                    f"Assessment: {summary.overall_assessment or 'n/a'}",
                ]
            )
        elif record.evaluation is not None and record.evaluation.raw:
            lines.append(f"Evaluation (unstructured): {record.evaluation.raw.strip()}")
        else:
            lines.append("No evaluation available")
        lines.append(f"Interviewer Notes: {record.notes}" if record.notes else "No interviewer notes")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class AssistantService:
    def __init__(self, completion: CompletionClient, interviews: InterviewService) -> None:
        self._completion = completion
        self._interviews = interviews

    # Question generation

    def generate_question(
        self,
        skills: Any,
        difficulty: Any,
        level: Any,
        fmt: Optional[str] = None,
    ) -> str:
        skill_list = _require_skills(skills)
        _require_text(difficulty=difficulty, level=level)
        if difficulty not in DIFFICULTIES:
            raise ValidationError("Invalid difficulty", details=f"expected one of {', '.join(DIFFICULTIES)}")
        variables = {"skills": skill_list, "difficulty": difficulty, "level": level, "format": fmt or "text"}
        try:
            return self._completion.complete(QUESTION_GENERATION, variables)
        except LlmGatewayError as exc:
            raise UpstreamFailure("Failed to generate question", details=str(exc)) from exc

    # Code evaluation

    def evaluate_code(self, question: Any, code: Any, skills: Any) -> EvaluationRecord:
        skill_list = _require_skills(skills)
        _require_text(question=question, code=code)
        raw, error = self._complete(CODE_EVALUATION, {"question": question, "code": code, "skills": skill_list})
        return self._evaluation_record(raw, error)

    def stream_evaluation(self, question: Any, code: Any, skills: Any) -> EvaluationStream:
        skill_list = _require_skills(skills)
        _require_text(question=question, code=code)
        chunks = self._completion.stream(CODE_EVALUATION, {"question": question, "code": code, "skills": skill_list})
        return EvaluationStream(chunks, self._evaluation_record)

    def evaluate_session_question(self, principal: Principal, session_id: str, index: int) -> InterviewSession:
        """Evaluate the code stored on question ``index`` and save the result on it."""

        session = self._interviews.get_session(principal, session_id)
        if session.is_completed:
            raise InvalidState("Cannot evaluate: interview is completed")
        if index < 0 or index >= len(session.questions):
            raise NotFound("Question not found")
        record = session.questions[index]
        if not record.submitted_code or not record.submitted_code.strip():
            raise ValidationError("Question has no submitted code")
        evaluation = self.evaluate_code(record.question, record.submitted_code, [record.skill])
        return self._interviews.record_evaluation(principal, session_id, index, record.submitted_code, evaluation)

    # Follow-ups

    def generate_follow_ups(self, question: Any, code: Any, evaluation: Any, skills: Any) -> FollowUpResult:
        skill_list = _require_skills(skills)
        _require_text(question=question, code=code)
        variables = {
            "question": question,
            "code": code,
            "evaluation": _evaluation_text(evaluation),
            "skills": skill_list,
        }
        raw, error = self._complete(FOLLOW_UP, variables)
        extraction = extract(raw)
        if isinstance(extraction.parsed, dict) and "question" in extraction.parsed:
            # A one-item array decodes as its only object.
            extraction = extraction.model_copy(update={"parsed": [extraction.parsed]})
        questions = validate_shape(extraction, _FOLLOW_UPS, keys=("follow_up_questions", "followUpQuestions"))
        self._log_extraction(FOLLOW_UP, extraction, questions is not None)
        return FollowUpResult(follow_up_questions=questions, raw=raw, error=error)

    # Final assessment

    def generate_assessment(
        self,
        name: Any,
        position: Any,
        skills: Any,
        question_evaluations: Union[str, Sequence[str], None],
    ) -> AssessmentResult:
        skill_list = _require_skills(skills)
        if isinstance(question_evaluations, (list, tuple)):
            question_evaluations = "\n\n".join(str(item) for item in question_evaluations)
        _require_text(name=name, position=position, question_evaluations=question_evaluations)
        variables = {
            "name": name,
            "position": position,
            "skills": skill_list,
            "question_evaluations": question_evaluations,
        }
        raw, error = self._complete(FINAL_ASSESSMENT, variables)
        extraction = extract(raw)
        assessment = validate_shape(extraction, GeneratedAssessment, keys=("final_assessment", "finalAssessment"))
        self._log_extraction(FINAL_ASSESSMENT, extraction, assessment is not None)
        return AssessmentResult(assessment=assessment, raw=raw, error=error)

    def generate_session_assessment(self, principal: Principal, session_id: str) -> SessionAssessment:
        """Draft a final assessment for a session, falling back to the aggregated seed."""

        session = self._interviews.get_session(principal, session_id)
        if not session.questions:
            raise ValidationError("No questions to evaluate")
        view = self._interviews.populate(session)
        scores = aggregate(session.questions)
        seed = seed_assessment(scores)
        candidate = view.candidate
        skills = candidate.skills if candidate else sorted({record.skill for record in session.questions})
        result = self.generate_assessment(
            candidate.name if candidate else "Unknown candidate",
            candidate.position if candidate else "Unknown position",
            skills,
            render_question_evaluations(session.questions),
        )
        if result.assessment is None:
            return SessionAssessment(assessment=seed, scores=scores, source="seed", raw=result.raw, error=result.error)
        drafted = {
            name: value
            for name, value in result.assessment.model_dump().items()
            if name in result.assessment.model_fields_set and value is not None
        }
        merged = FinalAssessment.model_validate({**seed.model_dump(), **drafted})
        return SessionAssessment(assessment=merged, scores=scores, source="model", raw=result.raw)

    # Internals

    def _complete(self, template_id: str, variables: dict) -> Tuple[str, Optional[str]]:
        try:
            return self._completion.complete(template_id, variables), None
        except LlmTimeoutError as exc:
            logger.warning("Completion %s timed out: %s", template_id, exc)
            return "", str(exc)
        except LlmGatewayError as exc:
            raise UpstreamFailure(details=str(exc)) from exc

    def _evaluation_record(self, raw: str, error: Optional[str]) -> EvaluationRecord:
        if error is not None:
            return EvaluationRecord(summary=None, raw=raw, error=error)
        extraction = extract(raw)
        summary = validate_shape(extraction, EvaluationSummary, keys=("summary",))
        self._log_extraction(CODE_EVALUATION, extraction, summary is not None)
        return EvaluationRecord(summary=summary, raw=raw)

    @staticmethod
    def _log_extraction(template_id: str, extraction: Extraction, valid: bool) -> None:
        log_event(
            "extraction",
            template=template_id,
            strategy=extraction.strategy,
            normalized=extraction.normalized,
            outcome="parsed" if valid else "raw",
        )


__all__ = [
    "AssessmentResult",
    "AssistantService",
    "EvaluationStream",
    "FollowUpQuestion",
    "FollowUpResult",
    "GeneratedAssessment",
    "SessionAssessment",
    "render_question_evaluations",
]
