from __future__ import annotations  # Candidate records and storage helpers

import logging
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from interview_session.models import new_id, utc_now
from storage import DocumentStore, ModelStore


logger = logging.getLogger(__name__)

Position = Literal["Intern", "Full-Time"]
InterviewLevel = Literal["High", "Mid", "Low"]

COLLECTION = "candidates"

# Self-analysis was once stored as a phrase such as "BE high, FE mid".
LEGACY_LEVEL_SCORES = {"high": 9, "mid": 6, "low": 3}
_LEGACY_RE = re.compile(r"^\s*BE\s+(high|mid|low)\s*,\s*FE\s+(high|mid|low)\s*$", re.IGNORECASE)


class SelfAssessment(BaseModel):  # Candidate's own 1-10 rating of backend/frontend skill
    backend: int = Field(ge=1, le=10)
    frontend: int = Field(ge=1, le=10)


def parse_legacy_self_analysis(value: str) -> SelfAssessment:
    """Map a legacy phrase like ``"BE high, FE mid"`` onto numeric scores."""

    match = _LEGACY_RE.match(value)
    if not match:
        raise ValueError(f"Unknown self-analysis value: {value!r}")
    backend, frontend = (LEGACY_LEVEL_SCORES[level.lower()] for level in match.groups())
    return SelfAssessment(backend=backend, frontend=frontend)


def _coerce_self_assessment(value: Any) -> Any:  # Accept legacy phrase and beScore/feScore forms
    if isinstance(value, str):
        if not value.strip():
            return None
        return parse_legacy_self_analysis(value)
    if isinstance(value, dict) and "backend" not in value and ("beScore" in value or "feScore" in value):
        return {"backend": value.get("beScore"), "frontend": value.get("feScore")}
    return value


class CandidateCreate(BaseModel):  # Fields accepted when registering a candidate
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    position: Position
    skills: List[str] = Field(min_length=1)
    self_assessment: Optional[SelfAssessment] = None
    resume_url: Optional[str] = None
    interview_level: InterviewLevel

    @field_validator("name", "email")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("must be an email address")
        return value

    @field_validator("skills")
    @classmethod
    def _skills(cls, value: List[str]) -> List[str]:
        skills = [skill.strip() for skill in value if skill and skill.strip()]
        if not skills:
            raise ValueError("at least one skill is required")
        return skills

    @field_validator("self_assessment", mode="before")
    @classmethod
    def _legacy(cls, value: Any) -> Any:
        return _coerce_self_assessment(value)


class Candidate(CandidateCreate):  # Stored candidate entry
    id: str = Field(default_factory=new_id)
    version: int = 0
    created_at: str = Field(default_factory=utc_now)


class CandidateStore(ModelStore[Candidate]):  # Candidates collection
    collection = COLLECTION
    model = Candidate

    def list_all(self) -> List[Candidate]:
        return self.find()

    def register(self, payload: CandidateCreate) -> Candidate:
        return self.create(Candidate(**payload.model_dump(include=set(CandidateCreate.model_fields))))


def migrate_self_analysis(documents: DocumentStore) -> Dict[str, int]:
    """Rewrite stored legacy self-analysis phrases as numeric scores.

    Unknown phrases are left in place and reported as skipped.
    """

    updated = 0
    skipped = 0
    for doc in documents.find(COLLECTION):
        value = doc.body.get("self_assessment")
        if not isinstance(value, str):
            continue
        try:
            scores = parse_legacy_self_analysis(value)
        except ValueError:
            logger.warning("Unknown self-analysis value for candidate %s: %s", doc.doc_id, value)
            skipped += 1
            continue
        body = dict(doc.body)
        body["self_assessment"] = scores.model_dump()
        documents.replace(COLLECTION, doc.doc_id, body, expected_version=doc.version)
        logger.info(
            "Updated candidate %s: %s -> backend=%s frontend=%s",
            doc.doc_id,
            value,
            scores.backend,
            scores.frontend,
        )
        updated += 1
    return {"updated": updated, "skipped": skipped}


__all__ = [
    "Candidate",
    "CandidateCreate",
    "CandidateStore",
    "LEGACY_LEVEL_SCORES",
    "SelfAssessment",
    "migrate_self_analysis",
    "parse_legacy_self_analysis",
]
