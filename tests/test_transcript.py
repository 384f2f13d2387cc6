# tests/test_transcript.py
import asyncio

import pytest

from facehire.core.exceptions import NoAnswerCaptured, RecognitionError
from facehire.processors.transcript import MAX_WARNINGS, PushSpeechRecognizer, TranscriptAccumulator


@pytest.mark.asyncio
async def test_final_fragments_are_appended_with_trailing_space():
    accumulator = TranscriptAccumulator()
    accumulator.start(PushSpeechRecognizer())

    accumulator.handle_event("hello", is_final=True)
    accumulator.handle_event("wor", is_final=False)
    accumulator.handle_event("world", is_final=True)

    assert accumulator.transcript == "hello world "
    accumulator.close()


@pytest.mark.asyncio
async def test_silence_stops_recognition_but_keeps_text():
    accumulator = TranscriptAccumulator(silence_timeout=0.05)
    recognizer = PushSpeechRecognizer()
    accumulator.start(recognizer)

    accumulator.handle_event("answer", is_final=True)
    await asyncio.sleep(0.15)

    assert not recognizer.active
    assert not accumulator.is_recognizing
    assert accumulator.transcript == "answer "


@pytest.mark.asyncio
async def test_events_rearm_the_silence_timer():
    accumulator = TranscriptAccumulator(silence_timeout=0.1)
    recognizer = PushSpeechRecognizer()
    accumulator.start(recognizer)

    for _ in range(3):
        accumulator.handle_event("partial", is_final=False)
        await asyncio.sleep(0.06)

    assert recognizer.active
    accumulator.close()


@pytest.mark.asyncio
async def test_events_are_ignored_when_not_recognizing():
    accumulator = TranscriptAccumulator()
    accumulator.handle_event("stray", is_final=True)
    assert accumulator.transcript == ""


@pytest.mark.asyncio
async def test_submit_returns_trimmed_answer_and_clears():
    accumulator = TranscriptAccumulator()
    recognizer = PushSpeechRecognizer()
    accumulator.start(recognizer)
    accumulator.handle_event("  my answer", is_final=True)

    assert accumulator.submit() == "my answer"
    assert accumulator.transcript == ""
    assert not recognizer.active


@pytest.mark.asyncio
async def test_empty_submit_raises_and_keeps_recognizing():
    accumulator = TranscriptAccumulator()
    recognizer = PushSpeechRecognizer()
    accumulator.start(recognizer)
    accumulator.handle_event("   ", is_final=True)

    with pytest.raises(NoAnswerCaptured):
        accumulator.submit()
    assert recognizer.active
    accumulator.close()


@pytest.mark.asyncio
async def test_new_start_stops_previous_recognizer_and_resets():
    accumulator = TranscriptAccumulator()
    first = PushSpeechRecognizer()
    second = PushSpeechRecognizer()
    accumulator.start(first)
    accumulator.handle_event("old", is_final=True)

    accumulator.start(second)

    assert not first.active
    assert second.active
    assert accumulator.transcript == ""
    accumulator.close()


def test_recognition_error_stops_and_records_warning():
    accumulator = TranscriptAccumulator()
    recognizer = PushSpeechRecognizer()
    accumulator.start(recognizer)

    error = accumulator.handle_error("network")

    assert isinstance(error, RecognitionError)
    assert "network" in error.message
    assert list(accumulator.warnings) == [error.message]
    assert not recognizer.active


def test_recognition_warnings_are_capped():
    accumulator = TranscriptAccumulator()
    for attempt in range(MAX_WARNINGS + 5):
        accumulator.start(PushSpeechRecognizer())
        accumulator.handle_error(f"network {attempt}")

    assert len(accumulator.warnings) == MAX_WARNINGS
    assert "network 4" not in accumulator.warnings[0]
    assert "network 5" in accumulator.warnings[0]
