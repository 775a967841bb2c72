import services.scoring as scoring
from interview_session import EvaluationRecord, EvaluationSummary, QuestionRecord


def _question(code_quality: int, **summary) -> QuestionRecord:
    fields = {
        "correctness": 70,
        "code_quality": code_quality,
        "edge_case_handling": 60,
        "overall_rating": 75,
    }
    fields.update(summary)
    return QuestionRecord(
        skill="Python",
        difficulty="Easy",
        question="FizzBuzz",
        evaluation=EvaluationRecord(summary=EvaluationSummary(**fields), raw="{}"),
    )


def _unevaluated(raw: str = "") -> QuestionRecord:
    evaluation = EvaluationRecord(raw=raw) if raw else None
    return QuestionRecord(skill="SQL", difficulty="Hard", question="Window functions", evaluation=evaluation)


def test_empty_set_yields_neutral_defaults():
    result = scoring.aggregate([])
    assert result.evaluated == 0
    assert (result.code_quality, result.technical_proficiency, result.problem_solving, result.overall) == (
        scoring.NEUTRAL_PERCENT,
    ) * 4
    seed = scoring.seed_assessment(result)
    assert (seed.code_quality, seed.technical_proficiency, seed.problem_solving, seed.overall) == (5, 5, 5, 5)


def test_questions_without_summary_do_not_contribute():
    result = scoring.aggregate([_unevaluated(), _unevaluated(raw="model said something"), _question(80)])
    assert result.evaluated == 1
    assert result.code_quality == 80


def test_code_quality_mean_of_three():
    result = scoring.aggregate([_question(80), _question(90), _question(100)])
    assert result.code_quality == 90
    assert result.evaluated == 3


def test_dimension_fallbacks_and_overall():
    questions = [
        _question(80, technical_skill=90, problem_understanding=70),
        _question(60),
    ]
    result = scoring.aggregate(questions)
    # technical: (90 + overall_rating 75) / 2; problem solving: (70 + correctness 70) / 2
    assert result.technical_proficiency == 83
    assert result.problem_solving == 70
    assert result.code_quality == 70
    assert result.overall == scoring.round_half_up((83 + 70 + 70) / 3)


def test_rounding_is_half_up():
    assert scoring.round_half_up(82.5) == 83
    assert scoring.round_half_up(84.5) == 85
    assert scoring.round_half_up(84.49) == 84


def test_seed_maps_percent_to_ten_point_scale():
    result = scoring.aggregate([_question(95, technical_skill=4, problem_understanding=55)])
    seed = scoring.seed_assessment(result)
    assert seed.code_quality == 10
    assert seed.technical_proficiency == 1
    assert seed.problem_solving == 6
    assert seed.strengths == [] and seed.improvements == [] and seed.comments == ""


def test_seeded_overall_is_mean_of_seeded_scores():
    result = scoring.aggregate([_question(76, technical_skill=85, problem_understanding=85)])
    seed = scoring.seed_assessment(result)
    assert (seed.technical_proficiency, seed.problem_solving, seed.code_quality) == (9, 9, 8)
    assert seed.overall == 9
