import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Union

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from candidate_management import CandidateCreate, CandidateStore
from interview_session import SessionStore
from principal_management import Principal, PrincipalStore
from services.access import AccessGuard
from services.assistant import AssistantService
from services.principals import PrincipalService
from services.sessions import InterviewService
from storage import Database, DocumentStore, migrate


EVALUATION_SUMMARY = {
    "overall_assessment": "Correct two-pointer solution with clear naming.",
    "correctness": 90,
    "code_quality": 80,
    "efficiency": "O(n) time, O(1) space",
    "edge_case_handling": 70,
    "technical_skill": 85,
    "problem_understanding": 88,
    "overall_rating": 84,
}

EVALUATION_REPLY = "Here is my evaluation.\n```json\n" + json.dumps({"summary": EVALUATION_SUMMARY}, indent=2) + "\n```\n"

Reply = Union[str, Exception, List[Union[str, Exception]], Callable[[Dict[str, Any]], str]]


class FakeCompletion:
    """Scripted completion client: replies are consumed per template in order.

    A callable reply is called with the prompt variables and its return
    value used as the reply text.
    """

    def __init__(self) -> None:
        self.replies: Dict[str, List[Reply]] = {}
        self.calls: List[tuple] = []

    def script(self, template_id: str, *replies: Reply) -> "FakeCompletion":
        self.replies.setdefault(template_id, []).extend(replies)
        return self

    def _next(self, template_id: str) -> Reply:
        queue = self.replies.get(template_id)
        if not queue:
            raise AssertionError(f"no scripted reply for {template_id}")
        return queue.pop(0)

    def complete(self, template_id: str, variables: Dict[str, Any]) -> str:
        self.calls.append((template_id, dict(variables)))
        reply = self._next(template_id)
        if callable(reply):
            reply = reply(variables)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, list):
            return "".join(reply)
        return reply

    def stream(self, template_id: str, variables: Dict[str, Any]) -> Iterator[str]:
        self.calls.append((template_id, dict(variables)))
        reply = self._next(template_id)
        chunks = reply if isinstance(reply, list) else [reply]
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(str(tmp_path / "test.db"))
    migrate(database)
    return database


@pytest.fixture
def documents(db) -> DocumentStore:
    return DocumentStore(db)


@pytest.fixture
def session_store(documents) -> SessionStore:
    return SessionStore(documents)


@pytest.fixture
def candidate_store(documents) -> CandidateStore:
    return CandidateStore(documents)


@pytest.fixture
def principal_store(documents) -> PrincipalStore:
    return PrincipalStore(documents)


@pytest.fixture
def guard(session_store) -> AccessGuard:
    return AccessGuard(session_store)


@pytest.fixture
def interviews(candidate_store, session_store, principal_store, guard) -> InterviewService:
    return InterviewService(candidate_store, session_store, principal_store, guard, max_retries=3)


@pytest.fixture
def principal_service(principal_store, guard) -> PrincipalService:
    return PrincipalService(principal_store, guard)


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def assistant(fake_completion, interviews) -> AssistantService:
    return AssistantService(fake_completion, interviews)


def _principal(store: PrincipalStore, name: str, role: str) -> Principal:
    return store.create(
        Principal(name=name, email=f"{name.lower()}@example.com", department="Engineering", role=role)
    )


@pytest.fixture
def admin(principal_store) -> Principal:
    return _principal(principal_store, "Ada", "admin")


@pytest.fixture
def interviewer_a(principal_store) -> Principal:
    return _principal(principal_store, "Alice", "interviewer")


@pytest.fixture
def interviewer_b(principal_store) -> Principal:
    return _principal(principal_store, "Bob", "interviewer")


@pytest.fixture
def candidate(candidate_store):
    return candidate_store.register(
        CandidateCreate(
            name="Carol",
            email="carol@example.com",
            position="Full-Time",
            skills=["Python", "SQL"],
            self_assessment={"backend": 8, "frontend": 5},
            interview_level="Mid",
        )
    )


def question_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {"skill": "Python", "difficulty": "Medium", "question": "## Two Sum\nReturn indices..."}
    payload.update(overrides)
    return payload
