import asyncio
import base64
from collections import deque
from typing import Callable, Deque, Dict, List, Mapping, Optional, Tuple

import cv2
import numpy as np

from ..application.models import EmotionSample
from ..core.exceptions import EmotionDetectionError
from ..core.interfaces import ExpressionClassifier
from ..core.logging import get_logger
from ..core.numeric import clamp, round_half_up

logger = get_logger(__name__)

DEFAULT_MOOD = "neutral"
DEFAULT_SAMPLE_INTERVAL = 1.0
MAX_WARNINGS = 20

# Weights of the anxiety formula; happy lowers anxiety
ANXIETY_WEIGHTS = {
    "angry": 0.3,
    "fearful": 0.3,
    "sad": 0.2,
    "happy": -0.4,
}
ANXIETY_SCALE = 20
MAX_ANXIETY = 10

EXPRESSION_LABELS = ("neutral", "happy", "sad", "angry", "fearful", "disgusted", "surprised")

ExpressionModel = Callable[[np.ndarray], Dict[str, float]]


def compute_anxiety_score(expressions: Mapping[str, float]) -> int:
    """
    Anxiety on a 0..10 scale from an expression distribution.

    The weighted sum is floored at 0 before scaling by 20, then rounded
    half-up and capped at 10.
    """
    raw = sum(weight * float(expressions.get(label, 0.0) or 0.0)
              for label, weight in ANXIETY_WEIGHTS.items())
    adjusted = max(0.0, raw)
    return clamp(round_half_up(adjusted * ANXIETY_SCALE), 0, MAX_ANXIETY)


def dominant_mood(expressions: Mapping[str, float]) -> str:
    mood = DEFAULT_MOOD
    best = 0.0
    for label, value in expressions.items():
        if value > best:
            best = value
            mood = label
    return mood


def decode_frame(data: str) -> np.ndarray:
    """
    Decode a browser frame (data URL or bare base64 JPEG/PNG) into a BGR image.

    Raises:
        EmotionDetectionError: the payload is not a decodable image
    """
    payload = data.split(",", 1)[1] if data.startswith("data:") else data
    try:
        frame_bytes = base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise EmotionDetectionError(f"Frame is not valid base64: {e}") from e
    frame_array = np.frombuffer(frame_bytes, dtype=np.uint8)
    frame = cv2.imdecode(frame_array, cv2.IMREAD_COLOR)
    if frame is None:
        raise EmotionDetectionError("Frame could not be decoded as an image")
    return frame


def neutral_expression_model(face: np.ndarray) -> Dict[str, float]:
    return {label: (1.0 if label == DEFAULT_MOOD else 0.0) for label in EXPRESSION_LABELS}


class CascadeExpressionClassifier(ExpressionClassifier):
    """
    Finds the largest face with OpenCV's Haar cascade and hands the face
    region to an expression model.
    """
    def __init__(self, expression_model: Optional[ExpressionModel] = None):
        try:
            cascade_path = cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
            self.face_cascade = cv2.CascadeClassifier(cascade_path)
        except Exception as e:
            raise EmotionDetectionError(f"Face detection model unavailable: {e}") from e
        if self.face_cascade.empty():
            raise EmotionDetectionError("Failed to load face detection model")
        self.expression_model = expression_model or neutral_expression_model

    def _detect_faces(self, frame: np.ndarray) -> List[Tuple[int, int, int, int]]:
        gray_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        faces = self.face_cascade.detectMultiScale(
            gray_frame,
            scaleFactor=1.05,
            minNeighbors=4,
            minSize=(30, 30)
        )
        return [(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]

    def _classify_sync(self, frame: np.ndarray) -> Dict[str, float]:
        faces = self._detect_faces(frame)
        if not faces:
            raise EmotionDetectionError("No face detected")
        x, y, w, h = max(faces, key=lambda box: box[2] * box[3])
        face_region = frame[y:y + h, x:x + w]
        return self.expression_model(face_region)

    async def classify(self, frame: np.ndarray) -> Dict[str, float]:
        try:
            return await asyncio.to_thread(self._classify_sync, frame)
        except EmotionDetectionError:
            raise
        except Exception as e:
            raise EmotionDetectionError(f"Expression model failed: {e}") from e


class LatestFrameBuffer:
    """Holds the most recent camera frame; older frames are dropped."""
    def __init__(self):
        self._frame: Optional[np.ndarray] = None

    def push(self, frame: np.ndarray) -> None:
        self._frame = frame

    @property
    def latest(self) -> Optional[np.ndarray]:
        return self._frame

    def release(self) -> None:
        self._frame = None


class EmotionSampler:
    """
    Samples the expression classifier and keeps only the latest reading.

    Classifier failures never propagate: the previous sample is kept and a
    warning is recorded for the caller to display.
    """
    def __init__(self, classifier: Optional[ExpressionClassifier]):
        self.classifier = classifier
        self._latest = EmotionSample()
        self._task: Optional[asyncio.Task] = None
        self.warnings: Deque[str] = deque(maxlen=MAX_WARNINGS)

    @property
    def latest(self) -> EmotionSample:
        return self._latest

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sample(self, frame: np.ndarray) -> EmotionSample:
        if self.classifier is None:
            self.record_warning("Face detection model is not available")
            return self._latest
        try:
            expressions = await self.classifier.classify(frame)
        except EmotionDetectionError as e:
            self.record_warning(e.message)
            return self._latest

        self._latest = EmotionSample(
            mood=dominant_mood(expressions),
            anxiety_score=compute_anxiety_score(expressions),
        )
        logger.debug("emotion_sampled", mood=self._latest.mood, anxiety=self._latest.anxiety_score)
        return self._latest

    async def run(self, frames: LatestFrameBuffer, interval: float = DEFAULT_SAMPLE_INTERVAL) -> None:
        while True:
            frame = frames.latest
            if frame is not None:
                await self.sample(frame)
            await asyncio.sleep(interval)

    def start(self, frames: LatestFrameBuffer, interval: float = DEFAULT_SAMPLE_INTERVAL) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self.run(frames, interval))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def record_warning(self, message: str) -> None:
        logger.warning("emotion_detection_failed", error=message)
        # consecutive duplicates collapse into one entry
        if not self.warnings or self.warnings[-1] != message:
            self.warnings.append(message)
