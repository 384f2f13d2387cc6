import random
from typing import List, Optional, Sequence, Tuple

from ..core.exceptions import NoQuestionsAvailable
from .models import Question

ALL_CATEGORIES = "All"


def filter_by_category(bank: Sequence[Question], category: str) -> List[Question]:
    if category == ALL_CATEGORIES:
        return list(bank)
    wanted = category.lower()
    return [q for q in bank if q.category and q.category.lower() == wanted]


def list_categories(bank: Sequence[Question]) -> List[str]:
    """Distinct categories in the order they first appear."""
    seen = {}
    for question in bank:
        if question.category and question.category not in seen:
            seen[question.category] = None
    return list(seen)


def select_session_questions(bank: Sequence[Question],
                             category: str,
                             count: int,
                             rng: Optional[random.Random] = None) -> Tuple[Question, ...]:
    """
    Pick the questions for one interview run.

    Args:
        bank: Loaded question bank
        category: Category name, matched case-insensitively, or "All"
        count: Requested number of questions
        rng: Random source; pass a seeded instance for a reproducible order

    Returns:
        Up to `count` distinct questions in random order

    Raises:
        NoQuestionsAvailable: nothing matches the category or count <= 0
    """
    pool = filter_by_category(bank, category)
    if not pool:
        raise NoQuestionsAvailable(
            "No questions available for this category.",
            details={"category": category},
        )
    if count <= 0:
        raise NoQuestionsAvailable(
            "At least one question must be requested.",
            details={"category": category, "count": count},
        )

    rng = rng or random.Random()
    # Fisher-Yates over a copy; the bank itself is never reordered
    for i in range(len(pool) - 1, 0, -1):
        j = rng.randint(0, i)
        pool[i], pool[j] = pool[j], pool[i]
    return tuple(pool[:min(count, len(pool))])
