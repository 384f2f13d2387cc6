from typing import List

from fastapi import APIRouter, Depends, status

from ....managers.interviews import InterviewScheduler, InterviewView
from ....storage import SQLDocumentStore
from ..dependencies import get_store
from ..schemas import InterviewCreate, InterviewOut

router = APIRouter(prefix="/interviews", tags=["interviews"])


@router.post("", response_model=InterviewOut, status_code=status.HTTP_201_CREATED)
async def schedule_interview(body: InterviewCreate, store: SQLDocumentStore = Depends(get_store)):
    interview = await InterviewScheduler(store).schedule(
        body.candidate_id, body.scheduled_at, body.interviewer)
    return InterviewOut.from_interview(interview)


@router.get("", response_model=List[InterviewOut])
async def list_interviews(candidate_id: str,
                          view: InterviewView = InterviewView.UPCOMING,
                          store: SQLDocumentStore = Depends(get_store)):
    interviews = await InterviewScheduler(store).list(candidate_id, view)
    return [InterviewOut.from_interview(interview) for interview in interviews]


@router.get("/{interview_id}", response_model=InterviewOut)
async def get_interview(interview_id: str, store: SQLDocumentStore = Depends(get_store)):
    return InterviewOut.from_interview(await store.get_interview(interview_id))


@router.get("/{interview_id}/reports")
async def list_interview_reports(interview_id: str, store: SQLDocumentStore = Depends(get_store)):
    """Stored session reports of an interview, oldest first."""
    await store.get_interview(interview_id)
    return await store.list_reports(interview_id)
