import json

import pytest
from fastapi.testclient import TestClient

from api_server import create_app
from config import Settings
from conftest import EVALUATION_REPLY, FakeCompletion, question_payload
from llm_gateway import LlmTimeoutError


CANDIDATE = {
    "name": "Carol",
    "email": "carol@example.com",
    "position": "Full-Time",
    "skills": ["Python", "SQL"],
    "self_assessment": "BE high, FE mid",
    "interview_level": "Mid",
}


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def client(tmp_path, completion):
    app = create_app(Settings(DB_PATH=str(tmp_path / "api.db")), completion=completion)
    with TestClient(app) as test_client:
        yield test_client


def _as(principal_id):
    return {"X-Principal-Id": principal_id}


@pytest.fixture
def admin_id(client):
    resp = client.post(
        "/api/admin/init",
        json={"name": "Ada", "email": "ada@example.com", "department": "IT"},
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def _interviewer(client, admin_id, name):
    resp = client.post(
        "/api/users",
        json={"name": name, "email": f"{name.lower()}@example.com", "department": "Engineering"},
        headers=_as(admin_id),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture
def alice(client, admin_id):
    return _interviewer(client, admin_id, "Alice")


@pytest.fixture
def session_id(client, alice):
    candidate = client.post("/api/candidates", json=CANDIDATE, headers=_as(alice))
    assert candidate.status_code == 201
    assert candidate.json()["self_assessment"] == {"backend": 9, "frontend": 6}
    resp = client.post(
        "/api/interview-sessions",
        json={"candidateId": candidate.json()["id"]},
        headers=_as(alice),
    )
    assert resp.status_code == 201
    return resp.json()["id"]


def test_full_interview_flow(client, completion, alice, session_id):
    added = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"action": "addQuestion", "data": question_payload()},
        headers=_as(alice),
    )
    assert added.status_code == 200
    assert len(added.json()["questions"]) == 1

    coded = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={
            "action": "updateQuestion",
            "data": {"question_index": 0, "submitted_code": "def two_sum(nums, target): ..."},
        },
        headers=_as(alice),
    )
    assert coded.status_code == 200

    completion.script("code_evaluation", EVALUATION_REPLY)
    evaluated = client.post(f"/api/interview-sessions/{session_id}/questions/0/evaluate", headers=_as(alice))
    assert evaluated.status_code == 200
    assert evaluated.json()["questions"][0]["evaluation"]["summary"]["code_quality"] == 80

    draft = client.get(f"/api/interview-sessions/{session_id}/assessment-draft", headers=_as(alice))
    assert draft.status_code == 200
    assert draft.json()["assessment"]["code_quality"] == 8

    completed = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"action": "completeInterview", "data": draft.json()["assessment"]},
        headers=_as(alice),
    )
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["final_assessment"]["code_quality"] == 8

    rejected = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"action": "addQuestion", "data": question_payload()},
        headers=_as(alice),
    )
    assert rejected.status_code == 409
    assert "error" in rejected.json()

    view = client.get(f"/api/interview-sessions/{session_id}", headers=_as(alice))
    assert view.json()["candidate"]["name"] == "Carol"
    assert view.json()["interviewer"]["name"] == "Alice"


def test_missing_or_unknown_principal_is_unauthorized(client, admin_id):
    assert client.get("/api/interview-sessions").status_code == 401
    resp = client.get("/api/interview-sessions", headers=_as("nobody"))
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_other_interviewer_is_forbidden(client, admin_id, session_id):
    bob = _interviewer(client, admin_id, "Bob")
    resp = client.get(f"/api/interview-sessions/{session_id}", headers=_as(bob))
    assert resp.status_code == 403
    assert client.get("/api/interview-sessions", headers=_as(bob)).json() == []
    assert client.get(f"/api/interview-sessions/{session_id}", headers=_as(admin_id)).status_code == 200


def test_deactivated_interviewer_loses_access(client, admin_id, alice, session_id):
    resp = client.patch(f"/api/users/{alice}", json={"isActive": False}, headers=_as(admin_id))
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert client.get(f"/api/interview-sessions/{session_id}", headers=_as(alice)).status_code == 401


def test_error_envelopes(client, alice, session_id):
    missing = client.get("/api/interview-sessions/does-not-exist", headers=_as(alice))
    assert missing.status_code == 404
    assert missing.json()["error"] == "Interview session not found"

    malformed = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"data": {}},
        headers=_as(alice),
    )
    assert malformed.status_code == 400
    assert "action" in malformed.json()["details"]

    unknown = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"action": "deleteEverything"},
        headers=_as(alice),
    )
    assert unknown.status_code == 400

    out_of_range = client.patch(
        f"/api/interview-sessions/{session_id}",
        json={"action": "updateQuestion", "data": {"question_index": 5, "notes": "x"}},
        headers=_as(alice),
    )
    assert out_of_range.status_code == 404


def test_interviewer_cannot_manage_users(client, alice):
    resp = client.get("/api/users", headers=_as(alice))
    assert resp.status_code == 403
    again = client.post("/api/admin/init", json={"name": "Eve", "email": "eve@example.com", "department": "IT"})
    assert again.status_code == 400


def test_evaluate_code_timeout_returns_raw_record(client, completion, alice):
    completion.script("code_evaluation", LlmTimeoutError("timed out"))
    resp = client.post(
        "/api/ai/evaluate-code",
        json={"question": "Two Sum", "code": "pass", "skills": ["Python"]},
        headers=_as(alice),
    )
    assert resp.status_code == 200
    evaluation = resp.json()["evaluation"]
    assert evaluation["summary"] is None
    assert evaluation["error"] == "timed out"


def test_stream_evaluation_emits_ndjson(client, completion, alice):
    completion.script("code_evaluation", [EVALUATION_REPLY[:20], EVALUATION_REPLY[20:]])
    with client.stream(
        "POST",
        "/api/ai/stream-evaluation",
        json={"question": "Two Sum", "code": "pass", "skills": ["Python"]},
        headers=_as(alice),
    ) as resp:
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/x-ndjson")
        lines = [json.loads(line) for line in resp.iter_lines() if line]

    assert [line["type"] for line in lines] == ["chunk", "chunk", "result"]
    assert "".join(line["text"] for line in lines[:2]) == EVALUATION_REPLY
    assert lines[-1]["evaluation"]["summary"]["overall_rating"] == 84
