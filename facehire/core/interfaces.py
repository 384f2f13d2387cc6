from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
import numpy as np


class ExpressionClassifier(ABC):
    @abstractmethod
    async def classify(self, frame: np.ndarray) -> Dict[str, float]:
        """Return a weight per expression label for the face in the frame.

        Raises EmotionDetectionError when no face is found or the model fails.
        """
        pass


class SpeechRecognizer(ABC):
    """A speech-to-text session that delivers events to a TranscriptAccumulator."""

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class EmbeddingProvider(ABC):
    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """Return one vector per input string, in input order."""
        pass


class Grader(ABC):
    @abstractmethod
    async def score(self, answer: str, reference: str) -> int:
        """Score an answer against its reference on a 0..100 scale."""
        pass


class DocumentStore(ABC):
    @abstractmethod
    async def create_interview(self,
                               candidate_id: str,
                               scheduled_at: datetime,
                               interviewer: str) -> Any:
        pass

    @abstractmethod
    async def get_interview(self, interview_id: str) -> Any:
        pass

    @abstractmethod
    async def query_interviews(self,
                               candidate_id: str,
                               status: Optional[str] = None,
                               scheduled_before: Optional[datetime] = None,
                               scheduled_from: Optional[datetime] = None,
                               descending: bool = False) -> List[Any]:
        pass

    @abstractmethod
    async def complete_session(self, report: Any) -> Any:
        """Create the report and mark its interview completed in one transaction."""
        pass

    @abstractmethod
    async def get_report(self, report_id: str) -> Any:
        pass

    @abstractmethod
    async def list_reports(self, interview_id: str) -> List[Any]:
        pass

    @abstractmethod
    async def load_grading_config(self) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def save_grading_config(self, config: Dict[str, Any]) -> None:
        pass
