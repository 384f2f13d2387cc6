# tests/test_emotion.py
import asyncio
import base64

import cv2
import numpy as np
import pytest

from facehire.core.exceptions import EmotionDetectionError
from facehire.core.interfaces import ExpressionClassifier
from facehire.core.numeric import round_half_up
from facehire.processors.emotion import (
    MAX_WARNINGS,
    CascadeExpressionClassifier,
    EmotionSampler,
    LatestFrameBuffer,
    compute_anxiety_score,
    decode_frame,
    dominant_mood,
)


class StubClassifier(ExpressionClassifier):
    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def classify(self, frame):
        self.calls += 1
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


def _frame():
    return np.zeros((8, 8, 3), dtype=np.uint8)


@pytest.mark.parametrize("expressions, expected", [
    ({"angry": 0.5, "fearful": 0.2, "sad": 0.1}, 5),
    ({"happy": 1.0}, 0),
    ({"angry": 1.0, "fearful": 1.0, "sad": 1.0}, 10),
    ({"neutral": 1.0}, 0),
    ({}, 0),
])
def test_anxiety_score(expressions, expected):
    assert compute_anxiety_score(expressions) == expected


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.4999) == 2


def test_dominant_mood():
    assert dominant_mood({"neutral": 0.2, "sad": 0.7, "happy": 0.1}) == "sad"
    assert dominant_mood({}) == "neutral"


def test_decode_frame_accepts_data_url():
    ok, encoded = cv2.imencode(".png", np.full((4, 6, 3), 255, dtype=np.uint8))
    assert ok
    payload = base64.b64encode(encoded.tobytes()).decode()

    frame = decode_frame("data:image/png;base64," + payload)

    assert frame.shape == (4, 6, 3)


@pytest.mark.parametrize("data", ["not base64!!", base64.b64encode(b"hello").decode()])
def test_decode_frame_rejects_garbage(data):
    with pytest.raises(EmotionDetectionError):
        decode_frame(data)


@pytest.mark.asyncio
async def test_sample_updates_latest():
    sampler = EmotionSampler(StubClassifier([{"angry": 0.5, "fearful": 0.2, "sad": 0.1}]))

    sample = await sampler.sample(_frame())

    assert sample.mood == "angry"
    assert sample.anxiety_score == 5
    assert sampler.latest == sample


@pytest.mark.asyncio
async def test_failed_sample_keeps_previous_and_warns():
    classifier = StubClassifier([
        {"happy": 0.9},
        EmotionDetectionError("No face detected"),
        EmotionDetectionError("No face detected"),
    ])
    sampler = EmotionSampler(classifier)

    first = await sampler.sample(_frame())
    await sampler.sample(_frame())
    second = await sampler.sample(_frame())

    assert second == first
    assert list(sampler.warnings) == ["No face detected"]


@pytest.mark.asyncio
async def test_missing_classifier_yields_neutral():
    sampler = EmotionSampler(classifier=None)

    sample = await sampler.sample(_frame())

    assert sample.mood == "neutral"
    assert sample.anxiety_score == 0
    assert sampler.warnings


@pytest.mark.asyncio
async def test_polling_loop_samples_latest_frame_until_stopped():
    classifier = StubClassifier([{"sad": 1.0}])
    sampler = EmotionSampler(classifier)
    frames = LatestFrameBuffer()

    sampler.start(frames, interval=0.01)
    await asyncio.sleep(0.05)
    assert classifier.calls == 0

    frames.push(_frame())
    await asyncio.sleep(0.05)
    await sampler.stop()

    assert classifier.calls > 0
    assert not sampler.running
    assert sampler.latest.mood == "sad"


@pytest.mark.asyncio
async def test_alternating_warnings_are_capped():
    sampler = EmotionSampler(StubClassifier([
        EmotionDetectionError("No face detected"),
        EmotionDetectionError("Expression model failed"),
    ] * 50))

    for _ in range(100):
        await sampler.sample(_frame())

    assert len(sampler.warnings) == MAX_WARNINGS
    assert sampler.warnings[-1] == "Expression model failed"


def test_missing_cascade_support_is_a_detection_error(monkeypatch):
    monkeypatch.delattr(cv2, "CascadeClassifier", raising=False)
    with pytest.raises(EmotionDetectionError):
        CascadeExpressionClassifier()
