from __future__ import annotations  # Session persistence

from typing import List

from storage import ModelStore

from .models import InterviewSession


class SessionStore(ModelStore[InterviewSession]):  # Sessions collection
    collection = "sessions"
    model = InterviewSession

    def for_interviewer(self, interviewer_id: str) -> List[InterviewSession]:
        return self.find(interviewer_id=interviewer_id)

    def for_candidate(self, candidate_id: str) -> List[InterviewSession]:
        return self.find(candidate_id=candidate_id)


__all__ = ["SessionStore"]
