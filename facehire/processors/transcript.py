import asyncio
from collections import deque
from typing import Deque, Optional

from ..core.exceptions import NoAnswerCaptured, RecognitionError
from ..core.interfaces import SpeechRecognizer
from ..core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SILENCE_TIMEOUT = 3.0
MAX_WARNINGS = 20


class PushSpeechRecognizer(SpeechRecognizer):
    """
    Recognizer whose events are pushed in from outside, e.g. a browser
    running speech recognition and posting results to the API.
    """
    def __init__(self, language: str = "en-US"):
        self.language = language
        self._active = False

    def start(self) -> None:
        self._active = True

    def stop(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active


class TranscriptAccumulator:
    """
    Collects the answer for the current question from a speech-to-text
    event stream.

    Final fragments are appended to the transcript followed by a space.
    Every event re-arms a silence timer; when it fires the recognizer is
    stopped but the accumulated text is kept.
    """
    def __init__(self, silence_timeout: float = DEFAULT_SILENCE_TIMEOUT):
        self.silence_timeout = silence_timeout
        self._transcript = ""
        self._recognizer: Optional[SpeechRecognizer] = None
        self._silence_timer: Optional[asyncio.TimerHandle] = None
        self.warnings: Deque[str] = deque(maxlen=MAX_WARNINGS)

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def is_recognizing(self) -> bool:
        return self._recognizer is not None and self._recognizer.active

    def start(self, recognizer: SpeechRecognizer) -> None:
        """Begin a new recognition session, replacing any previous one."""
        self._stop_recognizer()
        self._transcript = ""
        self._recognizer = recognizer
        recognizer.start()
        logger.debug("recognition_started")

    def handle_event(self, fragment: str, is_final: bool) -> None:
        if not self.is_recognizing:
            logger.debug("recognition_event_ignored", reason="not recognizing")
            return
        if is_final:
            self._transcript += fragment + " "
        self._arm_silence_timer()

    def handle_error(self, reason: str) -> RecognitionError:
        """Record a recognizer failure; recognition ends and may be retried."""
        error = RecognitionError(f"Speech recognition error: {reason}")
        logger.warning("recognition_error", reason=reason)
        self.warnings.append(error.message)
        self._stop_recognizer()
        return error

    def stop(self) -> None:
        self._stop_recognizer()

    def submit(self) -> str:
        """
        Take the captured answer and clear the buffer.

        Raises:
            NoAnswerCaptured: the transcript is empty or whitespace only
        """
        answer = self._transcript.strip()
        if not answer:
            raise NoAnswerCaptured("No answer captured. Please try again.")
        self._stop_recognizer()
        self._transcript = ""
        return answer

    def close(self) -> None:
        self._stop_recognizer()
        self._recognizer = None

    def _arm_silence_timer(self) -> None:
        self._cancel_silence_timer()
        loop = asyncio.get_running_loop()
        self._silence_timer = loop.call_later(self.silence_timeout, self._on_silence)

    def _on_silence(self) -> None:
        self._silence_timer = None
        if self._recognizer is not None and self._recognizer.active:
            logger.debug("recognition_stopped", reason="silence")
            self._recognizer.stop()

    def _cancel_silence_timer(self) -> None:
        if self._silence_timer is not None:
            self._silence_timer.cancel()
            self._silence_timer = None

    def _stop_recognizer(self) -> None:
        self._cancel_silence_timer()
        if self._recognizer is not None and self._recognizer.active:
            self._recognizer.stop()
