"""
Interview session state machine.

A session moves WAITING -> IN_PROGRESS -> COMPLETED and never goes back.
Answers are captured one question at a time; after the last answer every
response is graded, the report is built and it is persisted together with
the interview status change. If persisting fails the session stays
IN_PROGRESS and `complete()` can be retried.
"""

import asyncio
import random
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from ..application.aggregator import build_report
from ..application.models import (
    GradedResponse,
    InterviewStatus,
    Question,
    RawResponse,
    SessionPhase,
    SessionReport,
)
from ..application.question_bank import load_question_bank
from ..application.sampler import ALL_CATEGORIES, select_session_questions
from ..core.config import GradingConfig, Settings
from ..core.exceptions import InvalidSessionTransition, SessionNotFound
from ..core.interfaces import DocumentStore, ExpressionClassifier, Grader, SpeechRecognizer
from ..core.logging import get_logger
from ..processors.emotion import EmotionSampler, LatestFrameBuffer
from ..processors.transcript import TranscriptAccumulator
from .grading import build_grader, grade_responses

logger = get_logger(__name__)


class InterviewSession:
    def __init__(self,
                 interview_id: str,
                 candidate_id: str,
                 store: DocumentStore,
                 grader: Grader,
                 accumulator: Optional[TranscriptAccumulator] = None,
                 sampler: Optional[EmotionSampler] = None,
                 frames: Optional[LatestFrameBuffer] = None):
        self.id = str(uuid.uuid4())
        self.interview_id = interview_id
        self.candidate_id = candidate_id
        self.store = store
        self.grader = grader
        self.accumulator = accumulator or TranscriptAccumulator()
        self.sampler = sampler or EmotionSampler(classifier=None)
        self.frames = frames or LatestFrameBuffer()

        self.phase = SessionPhase.WAITING
        self.category = ALL_CATEGORIES
        self.questions: Tuple[Question, ...] = ()
        self.current_index = 0
        self.responses: List[RawResponse] = []
        self.report: Optional[SessionReport] = None
        self._graded: Optional[List[GradedResponse]] = None
        self._pending_report: Optional[SessionReport] = None
        self.last_active = time.monotonic()

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase != SessionPhase.IN_PROGRESS or not self.questions:
            return None
        return self.questions[self.current_index]

    @property
    def all_answered(self) -> bool:
        return bool(self.questions) and len(self.responses) == len(self.questions)

    @property
    def warnings(self) -> List[str]:
        return list(self.accumulator.warnings) + list(self.sampler.warnings)

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def start(self,
              bank: Sequence[Question],
              category: str = ALL_CATEGORIES,
              count: int = 5,
              rng: Optional[random.Random] = None) -> Tuple[Question, ...]:
        """
        Select the questions and begin the interview.

        Raises:
            NoQuestionsAvailable: nothing to ask; the session stays WAITING
        """
        self._require(SessionPhase.WAITING)
        self.questions = select_session_questions(bank, category, count, rng=rng)
        self.category = category
        self.current_index = 0
        self.responses = []
        self.phase = SessionPhase.IN_PROGRESS
        logger.info("session_started", session_id=self.id, interview_id=self.interview_id,
                    category=category, questions=len(self.questions))
        return self.questions

    def start_recording(self, recognizer: SpeechRecognizer) -> None:
        """Start capturing the current answer; any earlier recognition is stopped."""
        self._require(SessionPhase.IN_PROGRESS)
        self.accumulator.start(recognizer)

    async def submit_answer(self) -> Optional[SessionReport]:
        """
        Record the captured answer for the current question and advance.

        Returns:
            The persisted report when this was the last question, else None

        Raises:
            NoAnswerCaptured: the transcript is empty; nothing changes
            PersistenceError: the last answer was recorded but saving failed
        """
        self._require(SessionPhase.IN_PROGRESS)
        if self.all_answered:
            raise InvalidSessionTransition("All questions are answered; complete the session")

        answer = self.accumulator.submit()
        question = self.questions[self.current_index]
        self.responses.append(RawResponse(
            question=question,
            answer_text=answer,
            emotion=self.sampler.latest,
            answered_at=datetime.now(timezone.utc),
        ))
        logger.info("answer_recorded", session_id=self.id, index=self.current_index)

        if self.current_index + 1 < len(self.questions):
            self.current_index += 1
            return None
        return await self.complete()

    async def complete(self) -> SessionReport:
        """Grade, aggregate and persist. Safe to call again after a PersistenceError."""
        self._require(SessionPhase.IN_PROGRESS)
        if not self.all_answered:
            raise InvalidSessionTransition(
                "Session has unanswered questions",
                details={"answered": len(self.responses), "total": len(self.questions)},
            )

        if self._graded is None:
            self._graded = await grade_responses(self.responses, self.grader)
        if self._pending_report is None:
            self._pending_report = build_report(
                interview_id=self.interview_id,
                candidate_id=self.candidate_id,
                category=self.category,
                responses=self._graded,
            )

        self.report = await self.store.complete_session(self._pending_report)
        self.phase = SessionPhase.COMPLETED
        logger.info("session_completed", session_id=self.id, report_id=self.report.id,
                    total_score=self.report.total_score_percent)
        await self.close()
        return self.report

    async def regrade(self) -> SessionReport:
        # Whether a regrade overwrites, versions or duplicates the report is undecided
        raise NotImplementedError("Regrading a completed session is not supported")

    async def close(self) -> None:
        """Release the recognizer, the emotion poller and the camera frames."""
        self.accumulator.close()
        await self.sampler.stop()
        self.frames.release()

    def _require(self, phase: SessionPhase) -> None:
        if self.phase != phase:
            raise InvalidSessionTransition(
                f"Session is {self.phase.value}, expected {phase.value}",
                details={"session_id": self.id, "phase": self.phase.value},
            )


async def resolve_grading_config(store: DocumentStore, settings: Settings) -> GradingConfig:
    """Admin-saved config wins over the environment."""
    stored = await store.load_grading_config()
    if stored:
        return GradingConfig(**stored)
    return GradingConfig.from_settings(settings)


class SessionRegistry:
    """
    Live sessions of this process, keyed by session id.

    At most one session per interview is kept; opening a new one closes the
    older. Completed and idle sessions are released by `prune()`.
    """
    def __init__(self):
        self._sessions: Dict[str, InterviewSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def add(self, session: InterviewSession) -> None:
        for existing in list(self._sessions.values()):
            if existing.interview_id == session.interview_id:
                logger.info("session_replaced", session_id=existing.id, interview_id=existing.interview_id)
                await self.remove(existing.id)
        self._sessions[session.id] = session

    def get(self, session_id: str) -> InterviewSession:
        try:
            session = self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(f"Session {session_id} not found",
                                  details={"session_id": session_id}) from None
        session.touch()
        return session

    async def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            await session.close()

    async def prune(self, idle_timeout: float, now: Optional[float] = None) -> int:
        """Close completed sessions and those idle longer than `idle_timeout` seconds."""
        now = time.monotonic() if now is None else now
        expired = [
            session.id for session in self._sessions.values()
            if session.phase == SessionPhase.COMPLETED or now - session.last_active > idle_timeout
        ]
        for session_id in expired:
            logger.info("session_released", session_id=session_id)
            await self.remove(session_id)
        return len(expired)

    async def prune_forever(self, idle_timeout: float, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.prune(idle_timeout)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.remove(session_id)


async def open_session(store: DocumentStore,
                       settings: Settings,
                       interview_id: str,
                       candidate_id: str,
                       category: str = ALL_CATEGORIES,
                       count: Optional[int] = None,
                       classifier: Optional[ExpressionClassifier] = None,
                       grader: Optional[Grader] = None,
                       rng: Optional[random.Random] = None) -> InterviewSession:
    """
    Create and start a session for an upcoming interview.

    The question bank is reloaded and the grading config read once here.
    """
    interview = await store.get_interview(interview_id)
    if interview.status != InterviewStatus.UPCOMING:
        raise InvalidSessionTransition(
            f"Interview {interview_id} is already {interview.status.value}",
            details={"interview_id": interview_id},
        )

    bank = load_question_bank(settings.QUESTION_BANK_PATH)
    if not bank.questions:
        bank.raise_for_errors()
    elif not bank.ok:
        logger.warning("question_bank_errors", errors=list(bank.errors))

    if grader is None:
        grader = build_grader(await resolve_grading_config(store, settings))

    session = InterviewSession(
        interview_id=interview_id,
        candidate_id=candidate_id,
        store=store,
        grader=grader,
        accumulator=TranscriptAccumulator(silence_timeout=settings.SILENCE_TIMEOUT_SECONDS),
        sampler=EmotionSampler(classifier=classifier),
    )
    session.start(bank.questions, category,
                  settings.DEFAULT_QUESTION_COUNT if count is None else count, rng=rng)
    session.sampler.start(session.frames, interval=settings.EMOTION_SAMPLE_INTERVAL_SECONDS)
    return session
