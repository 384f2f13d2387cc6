from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

UNCATEGORIZED = "Uncategorized"
UNKNOWN_MOOD = "Unknown"


class InterviewStatus(str, Enum):
    UPCOMING = "upcoming"
    COMPLETED = "completed"


class SessionPhase(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    F = "F"


@dataclass(frozen=True)
class Question:
    text: str
    reference_answer: str
    category: Optional[str] = None
    difficulty: Optional[str] = None


@dataclass(frozen=True)
class EmotionSample:
    mood: str = "neutral"
    anxiety_score: int = 0


@dataclass(frozen=True)
class RawResponse:
    question: Question
    answer_text: str
    emotion: EmotionSample
    answered_at: datetime


@dataclass(frozen=True)
class GradedResponse:
    question: Question
    answer_text: str
    emotion: EmotionSample
    answered_at: datetime
    reference_answer: str
    score: int
    grade: Grade

    @property
    def category(self) -> str:
        return self.question.category or UNCATEGORIZED

    def to_document(self) -> Dict[str, Any]:
        return {
            "question": self.question.text,
            "category": self.question.category,
            "difficulty": self.question.difficulty,
            "answer": self.answer_text,
            "emotion": asdict(self.emotion),
            "answeredAt": self.answered_at.isoformat(),
            "correctAnswer": self.reference_answer,
            "score": self.score,
            "grade": self.grade.value,
        }


@dataclass(frozen=True)
class CategorySummary:
    average_score: float
    count: int


@dataclass(frozen=True)
class EmotionalSummary:
    average_anxiety: float
    mood_counts: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionReport:
    interview_id: str
    candidate_id: str
    category: str
    question_count: int
    responses: Tuple[GradedResponse, ...]
    completed_at: datetime
    category_summary: Dict[str, CategorySummary]
    emotional_summary: EmotionalSummary
    total_score_percent: float
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "interviewId": self.interview_id,
            "userId": self.candidate_id,
            "selectedCategory": self.category,
            "numQuestions": self.question_count,
            "responses": [response.to_document() for response in self.responses],
            "completedAt": self.completed_at.isoformat(),
            "categorySummary": {
                name: asdict(summary) for name, summary in self.category_summary.items()
            },
            "emotionalSummary": asdict(self.emotional_summary),
            "totalScorePercent": self.total_score_percent,
        }


@dataclass(frozen=True)
class Interview:
    id: str
    candidate_id: str
    interviewer: str
    scheduled_at: datetime
    created_at: datetime
    status: InterviewStatus = InterviewStatus.UPCOMING
    session_id: Optional[str] = None
