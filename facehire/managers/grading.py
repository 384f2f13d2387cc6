import asyncio
import re
from collections import Counter
from typing import List, Optional, Sequence

import numpy as np
from openai import AsyncOpenAI, OpenAIError

from ..application.models import Grade, GradedResponse, RawResponse
from ..core.config import GradingConfig, GradingMode, get_settings
from ..core.exceptions import GradingProviderError
from ..core.interfaces import EmbeddingProvider, Grader
from ..core.logging import get_logger
from ..core.numeric import clamp, round_half_up

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Inclusive lower bounds, checked top-down
GRADE_THRESHOLDS = (
    (80, Grade.A),
    (60, Grade.B),
    (40, Grade.C),
)


def grade_for_score(score: int) -> Grade:
    for lower_bound, grade in GRADE_THRESHOLDS:
        if score >= lower_bound:
            return grade
    return Grade.F


def dice_coefficient(first: str, second: str) -> float:
    """Bigram Dice similarity in [0, 1]; whitespace is ignored."""
    first = _WHITESPACE.sub("", first)
    second = _WHITESPACE.sub("", second)
    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[i:i + 2] for i in range(len(first) - 1))
    intersection = 0
    for i in range(len(second) - 1):
        bigram = second[i:i + 2]
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1
    return (2.0 * intersection) / (len(first) + len(second) - 2)


def cosine_similarity(u: Sequence[float], v: Sequence[float]) -> float:
    a = np.asarray(u, dtype=float)
    b = np.asarray(v, dtype=float)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


def _to_score(similarity: float) -> int:
    return clamp(round_half_up(100 * similarity), 0, 100)


class LexicalGrader(Grader):
    async def score(self, answer: str, reference: str) -> int:
        similarity = dice_coefficient(answer.strip().lower(), reference.strip().lower())
        return _to_score(similarity)


class EmbeddingGrader(Grader):
    def __init__(self, provider: EmbeddingProvider):
        self.provider = provider

    async def score(self, answer: str, reference: str) -> int:
        try:
            vectors = await self.provider.embed([answer, reference])
        except GradingProviderError:
            raise
        except Exception as e:
            raise GradingProviderError(f"Embedding provider failed: {e}") from e
        if len(vectors) != 2:
            raise GradingProviderError(
                f"Expected 2 embeddings, received {len(vectors)}")
        sizes = [len(vector) for vector in vectors]
        if sizes[0] == 0 or sizes[0] != sizes[1]:
            raise GradingProviderError(
                "Embeddings have mismatched dimensions", details={"dimensions": sizes})
        # Negative similarity is clamped to 0
        return _to_score(cosine_similarity(vectors[0], vectors[1]))


class FallbackGrader(Grader):
    """Tries the primary grader and falls back for that one answer on provider errors."""
    def __init__(self, primary: Grader, fallback: Grader):
        self.primary = primary
        self.fallback = fallback

    async def score(self, answer: str, reference: str) -> int:
        try:
            return await self.primary.score(answer, reference)
        except GradingProviderError as e:
            logger.warning("grading_fallback", error=e.message)
            return await self.fallback.score(answer, reference)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    def __init__(self, api_key: str, model: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self.model = model or get_settings().EMBEDDING_MODEL
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        try:
            response = await self.client.embeddings.create(
                input=list(texts),
                model=self.model
            )
        except OpenAIError as e:
            raise GradingProviderError(f"Embedding request failed: {e}") from e
        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]


def build_grader(config: GradingConfig, provider: Optional[EmbeddingProvider] = None) -> Grader:
    """Grader for a session: embedding with lexical fallback, or lexical only."""
    if config.effective_mode == GradingMode.EMBEDDING:
        provider = provider or OpenAIEmbeddingProvider(api_key=config.api_key)
        return FallbackGrader(EmbeddingGrader(provider), LexicalGrader())
    return LexicalGrader()


async def grade_response(response: RawResponse, grader: Grader) -> GradedResponse:
    reference = response.question.reference_answer
    score = await grader.score(response.answer_text, reference)
    return GradedResponse(
        question=response.question,
        answer_text=response.answer_text,
        emotion=response.emotion,
        answered_at=response.answered_at,
        reference_answer=reference,
        score=score,
        grade=grade_for_score(score),
    )


async def grade_responses(responses: Sequence[RawResponse], grader: Grader) -> List[GradedResponse]:
    """Grade every response concurrently; results keep question order."""
    return list(await asyncio.gather(
        *(grade_response(response, grader) for response in responses)
    ))
