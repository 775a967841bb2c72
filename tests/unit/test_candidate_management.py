import pytest
from pydantic import ValidationError

from candidate_management import CandidateCreate, migrate_self_analysis, parse_legacy_self_analysis


def _payload(**overrides):
    payload = {
        "name": "Erin",
        "email": "erin@example.com",
        "position": "Intern",
        "skills": ["React", "Node"],
        "interview_level": "High",
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "phrase,scores",
    [("BE high, FE mid", (9, 6)), ("BE low, FE high", (3, 9)), ("be mid,fe low", (6, 3))],
)
def test_legacy_phrases_map_to_scores(phrase, scores):
    parsed = parse_legacy_self_analysis(phrase)
    assert (parsed.backend, parsed.frontend) == scores


def test_unknown_legacy_phrase_is_rejected():
    with pytest.raises(ValueError):
        parse_legacy_self_analysis("BE expert, FE none")


def test_create_accepts_legacy_and_score_key_forms():
    assert CandidateCreate(**_payload(self_assessment="BE high, FE low")).self_assessment.frontend == 3
    converted = CandidateCreate(**_payload(self_assessment={"beScore": 7, "feScore": 4}))
    assert (converted.self_assessment.backend, converted.self_assessment.frontend) == (7, 4)
    assert CandidateCreate(**_payload()).self_assessment is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"skills": []},
        {"skills": ["  "]},
        {"position": "Contractor"},
        {"interview_level": "Senior"},
        {"email": "not-an-email"},
        {"self_assessment": {"backend": 11, "frontend": 5}},
        {"name": "   "},
    ],
)
def test_invalid_candidates_are_rejected(overrides):
    with pytest.raises(ValidationError):
        CandidateCreate(**_payload(**overrides))


def test_migration_rewrites_stored_legacy_documents(documents, candidate_store):
    documents.create("candidates", "legacy-1", {**_payload(), "self_assessment": "BE mid, FE mid", "created_at": "2024-01-01T00:00:00+00:00"})
    documents.create("candidates", "legacy-2", {**_payload(), "self_assessment": "BE great", "created_at": "2024-01-02T00:00:00+00:00"})
    documents.create("candidates", "modern", {**_payload(), "self_assessment": {"backend": 2, "frontend": 2}, "created_at": "2024-01-03T00:00:00+00:00"})

    result = migrate_self_analysis(documents)

    assert result == {"updated": 1, "skipped": 1}
    assert documents.get("candidates", "legacy-1").body["self_assessment"] == {"backend": 6, "frontend": 6}
    assert documents.get("candidates", "legacy-2").body["self_assessment"] == "BE great"
    assert candidate_store.get("legacy-1").self_assessment.backend == 6
