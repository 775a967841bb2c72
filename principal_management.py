from __future__ import annotations  # Principal (admin/interviewer) records and storage

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from interview_session.models import new_id, utc_now
from storage import ModelStore

Role = Literal["admin", "interviewer"]

ADMIN: Role = "admin"
INTERVIEWER: Role = "interviewer"


class PrincipalCreate(BaseModel):  # Fields accepted when registering a principal
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    department: str = Field(min_length=1)
    role: Role = INTERVIEWER

    @field_validator("name", "department")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("must be an email address")
        return value


class Principal(PrincipalCreate):  # Stored principal
    id: str = Field(default_factory=new_id)
    version: int = 0
    is_active: bool = True
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


class PrincipalStore(ModelStore[Principal]):  # Principals collection
    collection = "principals"
    model = Principal

    def by_email(self, email: str) -> Optional[Principal]:
        matches = self.find(email=email.strip().lower())
        return matches[0] if matches else None

    def with_role(self, role: Role) -> List[Principal]:
        return self.find(role=role)

    def active(self, principal_id: str) -> Optional[Principal]:
        """Return the principal only while it is active."""

        principal = self.get(principal_id)
        if principal is None or not principal.is_active:
            return None
        return principal


__all__ = ["ADMIN", "INTERVIEWER", "Principal", "PrincipalCreate", "PrincipalStore", "Role"]
