import pytest

from errors import ConcurrentModification, InvalidState, NotFound, ValidationError
from interview_session import QuestionUpdate, update_question
from storage import ConflictError

from conftest import question_payload


def _session_with_two_questions(interviews, interviewer, candidate):
    session = interviews.create_session(interviewer, candidate.id)
    interviews.patch_session(interviewer, session.id, "addQuestion", question_payload())
    return interviews.patch_session(interviewer, session.id, "addQuestion", question_payload(skill="SQL"))


def test_create_session_requires_existing_candidate(interviews, interviewer_a):
    with pytest.raises(NotFound):
        interviews.create_session(interviewer_a, "no-such-candidate")
    with pytest.raises(ValidationError):
        interviews.create_session(interviewer_a, "")


def test_create_session_sets_owner_and_initial_state(interviews, interviewer_a, candidate):
    session = interviews.create_session(interviewer_a, candidate.id)
    assert session.interviewer_id == interviewer_a.id
    assert session.status == "in-progress"
    assert session.questions == []
    assert session.version == 1


def test_patch_persists_and_bumps_version(interviews, session_store, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    assert session.version == 3
    stored = session_store.get(session.id)
    assert [q.skill for q in stored.questions] == ["Python", "SQL"]


def test_stale_save_is_rejected_by_store(interviews, session_store, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    interviews.patch_session(interviewer_a, session.id, "updateQuestion", {"question_index": 0, "notes": "first"})
    with pytest.raises(ConflictError):
        session_store.save(update_question(session, 1, QuestionUpdate(notes="second")))


def test_concurrent_updates_on_different_indices_both_land(
    monkeypatch, interviews, session_store, interviewer_a, candidate
):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    original_get = session_store.get
    reads = {"count": 0}

    def racing_get(item_id):
        current = original_get(item_id)
        reads["count"] += 1
        if reads["count"] == 1:
            # another writer lands between this read and the save
            session_store.save(update_question(current, 1, QuestionUpdate(notes="from B")))
        return current

    monkeypatch.setattr(session_store, "get", racing_get)
    interviews.patch_session(interviewer_a, session.id, "updateQuestion", {"question_index": 0, "notes": "from A"})

    final = original_get(session.id)
    assert [q.notes for q in final.questions] == ["from A", "from B"]
    assert reads["count"] == 2


def test_persistent_contention_gives_up(monkeypatch, interviews, session_store, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    original_get = session_store.get

    def always_racing_get(item_id):
        current = original_get(item_id)
        session_store.save(update_question(current, 1, QuestionUpdate(notes="interference")))
        return current

    monkeypatch.setattr(session_store, "get", always_racing_get)
    with pytest.raises(ConcurrentModification):
        interviews.patch_session(interviewer_a, session.id, "updateQuestion", {"question_index": 0, "notes": "x"})


def test_completion_is_terminal(interviews, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    draft = interviews.assessment_draft(interviewer_a, session.id)
    done = interviews.patch_session(
        interviewer_a, session.id, "completeInterview", draft.assessment.model_dump()
    )
    assert done.status == "completed"
    assert done.final_assessment == draft.assessment
    with pytest.raises(InvalidState):
        interviews.patch_session(interviewer_a, session.id, "addQuestion", question_payload())


def test_submitted_assessment_is_stored_verbatim(interviews, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    submitted = {
        "technical_proficiency": 9,
        "problem_solving": 2,
        "code_quality": 4,
        "overall": 6,
        "strengths": ["Communication"],
        "improvements": ["Complexity analysis"],
        "comments": "Override of the draft",
    }
    done = interviews.patch_session(interviewer_a, session.id, "completeInterview", submitted)
    assert done.final_assessment.model_dump() == submitted


def test_update_question_index_out_of_range(interviews, session_store, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    with pytest.raises(NotFound):
        interviews.patch_session(interviewer_a, session.id, "updateQuestion", {"question_index": 2, "notes": "x"})
    assert session_store.get(session.id).version == session.version


def test_populate_resolves_references(interviews, interviewer_a, candidate):
    session = interviews.create_session(interviewer_a, candidate.id)
    view = interviews.populate(session)
    assert view.candidate.name == "Carol"
    assert view.interviewer.email == interviewer_a.email
    assert view.id == session.id


def test_assessment_draft_on_unevaluated_session_is_neutral(interviews, interviewer_a, candidate):
    session = _session_with_two_questions(interviews, interviewer_a, candidate)
    draft = interviews.assessment_draft(interviewer_a, session.id)
    assert draft.scores.evaluated == 0
    assert draft.assessment.overall == 5
