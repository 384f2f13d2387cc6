from typing import Any, Dict, Optional


class FaceHireError(Exception):
    """
    Base class for every error raised by the interview service.

    Attributes:
        code: Stable identifier used by the API layer
        message: Human readable message
        details: Extra context for logs and API responses
    """
    code = "FACEHIRE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(f"[{self.code}] {message}")


class QuestionBankError(FaceHireError):
    """The question bank could not be loaded or had malformed rows."""
    code = "QUESTION_BANK_ERROR"


class NoQuestionsAvailable(FaceHireError):
    """Sampling found nothing to ask; the session cannot start."""
    code = "NO_QUESTIONS_AVAILABLE"


class NoAnswerCaptured(FaceHireError):
    """Submit was called with an empty transcript."""
    code = "NO_ANSWER_CAPTURED"


class RecognitionError(FaceHireError):
    code = "RECOGNITION_ERROR"


class EmotionDetectionError(FaceHireError):
    code = "EMOTION_DETECTION_ERROR"


class GradingProviderError(FaceHireError):
    code = "GRADING_PROVIDER_ERROR"


class PersistenceError(FaceHireError):
    """The report and the interview status could not be committed together."""
    code = "PERSISTENCE_ERROR"


class InvalidSessionTransition(FaceHireError):
    code = "INVALID_SESSION_TRANSITION"


class InterviewNotFound(FaceHireError):
    code = "INTERVIEW_NOT_FOUND"


class SessionNotFound(FaceHireError):
    code = "SESSION_NOT_FOUND"
