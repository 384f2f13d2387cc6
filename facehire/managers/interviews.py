from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from ..application.models import Interview, InterviewStatus
from ..core.interfaces import DocumentStore


class InterviewView(str, Enum):
    UPCOMING = "upcoming"
    MISSED = "missed"
    PAST = "past"


class InterviewScheduler:
    """Scheduling and the candidate dashboard listings."""
    def __init__(self, store: DocumentStore):
        self.store = store

    async def schedule(self, candidate_id: str, scheduled_at: datetime, interviewer: str) -> Interview:
        if scheduled_at.tzinfo is None:
            scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
        return await self.store.create_interview(candidate_id, scheduled_at, interviewer)

    async def list(self,
                   candidate_id: str,
                   view: InterviewView,
                   now: Optional[datetime] = None) -> List[Interview]:
        """
        Upcoming: not yet taken and scheduled from now on, soonest first.
        Missed: not taken although the scheduled time has passed, latest first.
        Past: completed, latest first.
        """
        now = now or datetime.now(timezone.utc)
        if view == InterviewView.UPCOMING:
            return await self.store.query_interviews(
                candidate_id, status=InterviewStatus.UPCOMING.value, scheduled_from=now)
        if view == InterviewView.MISSED:
            return await self.store.query_interviews(
                candidate_id, status=InterviewStatus.UPCOMING.value, scheduled_before=now,
                descending=True)
        return await self.store.query_interviews(
            candidate_id, status=InterviewStatus.COMPLETED.value, descending=True)
