from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from .models import (
    CategorySummary,
    EmotionalSummary,
    GradedResponse,
    SessionReport,
    UNKNOWN_MOOD,
)


def summarize_categories(responses: Sequence[GradedResponse]) -> Dict[str, CategorySummary]:
    scores: Dict[str, List[int]] = defaultdict(list)
    for response in responses:
        scores[response.category].append(response.score)
    return {
        category: CategorySummary(average_score=sum(values) / len(values), count=len(values))
        for category, values in scores.items()
    }


def summarize_emotions(responses: Sequence[GradedResponse]) -> EmotionalSummary:
    if not responses:
        return EmotionalSummary(average_anxiety=0.0, mood_counts={})
    mood_counts: Dict[str, int] = {}
    for response in responses:
        mood = response.emotion.mood or UNKNOWN_MOOD
        mood_counts[mood] = mood_counts.get(mood, 0) + 1
    total_anxiety = sum(response.emotion.anxiety_score for response in responses)
    return EmotionalSummary(
        average_anxiety=total_anxiety / len(responses),
        mood_counts=mood_counts,
    )


def total_score_percent(responses: Sequence[GradedResponse]) -> float:
    total = sum(response.score for response in responses)
    return round(total / max(len(responses), 1), 1)


def build_report(interview_id: str,
                 candidate_id: str,
                 category: str,
                 responses: Sequence[GradedResponse],
                 completed_at: Optional[datetime] = None) -> SessionReport:
    """Assemble the final report for a finished session."""
    return SessionReport(
        interview_id=interview_id,
        candidate_id=candidate_id,
        category=category,
        question_count=len(responses),
        responses=tuple(responses),
        completed_at=completed_at or datetime.now(timezone.utc),
        category_summary=summarize_categories(responses),
        emotional_summary=summarize_emotions(responses),
        total_score_percent=total_score_percent(responses),
    )
