"""Score aggregation over evaluated interview questions."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field

from interview_session.models import EvaluationSummary, FinalAssessment, QuestionRecord

NEUTRAL_PERCENT = 50  # Score reported for every dimension when nothing was evaluated


class ScoreAggregate(BaseModel):  # Mean per dimension on the 0-100 evaluation scale
    technical_proficiency: int = Field(ge=0, le=100)
    problem_solving: int = Field(ge=0, le=100)
    code_quality: int = Field(ge=0, le=100)
    overall: int = Field(ge=0, le=100)
    evaluated: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves away from zero (82.5 -> 83)."""

    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _mean(values: List[int]) -> int:
    return round_half_up(sum(values) / len(values))


def _technical(summary: EvaluationSummary) -> int:
    if summary.technical_skill is not None:
        return summary.technical_skill
    return summary.overall_rating


def _problem_solving(summary: EvaluationSummary) -> int:
    if summary.problem_understanding is not None:
        return summary.problem_understanding
    return summary.correctness


def evaluated_summaries(questions: Iterable[QuestionRecord]) -> List[EvaluationSummary]:
    summaries: List[EvaluationSummary] = []
    for question in questions:
        evaluation = question.evaluation
        if evaluation is not None and evaluation.summary is not None:
            summaries.append(evaluation.summary)
    return summaries


def aggregate(questions: Iterable[QuestionRecord]) -> ScoreAggregate:
    """Average the evaluation summaries of ``questions``.

    Questions without a structured summary do not contribute. With no
    contributing question every dimension is ``NEUTRAL_PERCENT``.
    """

    summaries = evaluated_summaries(questions)
    if not summaries:
        return ScoreAggregate(
            technical_proficiency=NEUTRAL_PERCENT,
            problem_solving=NEUTRAL_PERCENT,
            code_quality=NEUTRAL_PERCENT,
            overall=NEUTRAL_PERCENT,
            evaluated=0,
        )

    code_quality = _mean([summary.code_quality for summary in summaries])
    technical = _mean([_technical(summary) for summary in summaries])
    problem_solving = _mean([_problem_solving(summary) for summary in summaries])
    overall = _mean([technical, problem_solving, code_quality])
    return ScoreAggregate(
        technical_proficiency=technical,
        problem_solving=problem_solving,
        code_quality=code_quality,
        overall=overall,
        evaluated=len(summaries),
    )


def to_ten_point(percent: int) -> int:  # 0-100 -> 1-10
    return max(1, min(10, round_half_up(percent / 10)))


def seed_assessment(scores: ScoreAggregate, *, comments: Optional[str] = None) -> FinalAssessment:
    """Preliminary assessment on the 1-10 scale; the interviewer may overwrite any field.

    ``overall`` is the rounded mean of the three seeded scores, so the
    seeded fields agree with each other on the 1-10 scale.
    """

    technical = to_ten_point(scores.technical_proficiency)
    problem_solving = to_ten_point(scores.problem_solving)
    code_quality = to_ten_point(scores.code_quality)
    return FinalAssessment(
        technical_proficiency=technical,
        problem_solving=problem_solving,
        code_quality=code_quality,
        overall=_mean([technical, problem_solving, code_quality]),
        strengths=[],
        improvements=[],
        comments=comments or "",
    )


__all__ = [
    "NEUTRAL_PERCENT",
    "ScoreAggregate",
    "aggregate",
    "evaluated_summaries",
    "round_half_up",
    "seed_assessment",
    "to_ten_point",
]
