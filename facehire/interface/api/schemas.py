from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ...application.models import Interview, Question
from ...core.config import GradingMode
from ...managers.session import InterviewSession


class InterviewCreate(BaseModel):
    candidate_id: str
    scheduled_at: datetime
    interviewer: str = Field(min_length=1)


class InterviewOut(BaseModel):
    id: str
    candidate_id: str
    interviewer: str
    scheduled_at: datetime
    created_at: datetime
    status: str
    session_id: Optional[str] = None

    @classmethod
    def from_interview(cls, interview: Interview) -> "InterviewOut":
        return cls(
            id=interview.id,
            candidate_id=interview.candidate_id,
            interviewer=interview.interviewer,
            scheduled_at=interview.scheduled_at,
            created_at=interview.created_at,
            status=interview.status.value,
            session_id=interview.session_id,
        )


class SessionCreate(BaseModel):
    interview_id: str
    candidate_id: str
    category: str = "All"
    count: Optional[int] = None


class QuestionOut(BaseModel):
    text: str
    category: Optional[str] = None
    difficulty: Optional[str] = None

    @classmethod
    def from_question(cls, question: Question) -> "QuestionOut":
        return cls(text=question.text, category=question.category, difficulty=question.difficulty)


class EmotionOut(BaseModel):
    mood: str
    anxiety_score: int


class SessionOut(BaseModel):
    id: str
    interview_id: str
    phase: str
    category: str
    question_count: int
    current_index: int
    current_question: Optional[QuestionOut] = None
    answered: int
    transcript: str
    is_recognizing: bool
    emotion: EmotionOut
    warnings: List[str] = []
    report_id: Optional[str] = None

    @classmethod
    def from_session(cls, session: InterviewSession) -> "SessionOut":
        question = session.current_question
        return cls(
            id=session.id,
            interview_id=session.interview_id,
            phase=session.phase.value,
            category=session.category,
            question_count=len(session.questions),
            current_index=session.current_index,
            current_question=QuestionOut.from_question(question) if question else None,
            answered=len(session.responses),
            transcript=session.accumulator.transcript,
            is_recognizing=session.accumulator.is_recognizing,
            emotion=EmotionOut(mood=session.sampler.latest.mood,
                               anxiety_score=session.sampler.latest.anxiety_score),
            warnings=session.warnings,
            report_id=session.report.id if session.report else None,
        )


class RecordingStart(BaseModel):
    language: str = "en-US"


class SpeechEvent(BaseModel):
    transcript: str = ""
    is_final: bool = False
    error: Optional[str] = None


class FrameIn(BaseModel):
    data: str


class GradingConfigIn(BaseModel):
    mode: GradingMode
    api_key: Optional[str] = None


class GradingConfigOut(BaseModel):
    mode: GradingMode
    effective_mode: GradingMode
    has_api_key: bool


class AtsResultOut(BaseModel):
    role: str
    score: float
    matched: List[str]
    missing: List[str]


class CategoriesOut(BaseModel):
    categories: List[str]
    errors: List[str] = []


class ErrorOut(BaseModel):
    code: str
    message: str
    details: Dict = {}
