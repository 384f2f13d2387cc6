from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ....application.models import SessionPhase
from ....application.question_bank import load_question_bank
from ....application.sampler import list_categories
from ....core.config import Settings, get_settings
from ....core.exceptions import EmotionDetectionError
from ....managers.session import InterviewSession, SessionRegistry, open_session
from ....processors.emotion import decode_frame
from ....processors.transcript import PushSpeechRecognizer
from ....storage import SQLDocumentStore
from ..dependencies import get_registry, get_store
from ..schemas import CategoriesOut, FrameIn, RecordingStart, SessionCreate, SessionOut, SpeechEvent

router = APIRouter(tags=["sessions"])


async def _respond_and_release(session: InterviewSession, registry: SessionRegistry) -> SessionOut:
    """Completed sessions are dropped from the registry once their state is reported."""
    out = SessionOut.from_session(session)
    if session.phase == SessionPhase.COMPLETED:
        await registry.remove(session.id)
    return out


@router.get("/questions/categories", response_model=CategoriesOut)
async def question_categories(settings: Settings = Depends(get_settings)):
    bank = load_question_bank(settings.QUESTION_BANK_PATH)
    return CategoriesOut(categories=list_categories(bank.questions), errors=list(bank.errors))


@router.post("/sessions", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def start_session(body: SessionCreate,
                        request: Request,
                        store: SQLDocumentStore = Depends(get_store),
                        registry: SessionRegistry = Depends(get_registry),
                        settings: Settings = Depends(get_settings)):
    session = await open_session(
        store,
        settings,
        interview_id=body.interview_id,
        candidate_id=body.candidate_id,
        category=body.category,
        count=body.count,
        classifier=request.app.state.classifier,
    )
    await registry.add(session)
    return SessionOut.from_session(session)


@router.get("/sessions/{session_id}", response_model=SessionOut)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return SessionOut.from_session(registry.get(session_id))


@router.post("/sessions/{session_id}/recording", response_model=SessionOut)
async def start_recording(session_id: str,
                          body: RecordingStart,
                          registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.start_recording(PushSpeechRecognizer(language=body.language))
    return SessionOut.from_session(session)


@router.post("/sessions/{session_id}/transcript", response_model=SessionOut)
async def speech_event(session_id: str,
                       event: SpeechEvent,
                       registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    if event.error:
        session.accumulator.handle_error(event.error)
    else:
        session.accumulator.handle_event(event.transcript, event.is_final)
    return SessionOut.from_session(session)


@router.post("/sessions/{session_id}/frames", status_code=status.HTTP_202_ACCEPTED)
async def push_frame(session_id: str,
                     frame: FrameIn,
                     registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    try:
        session.frames.push(decode_frame(frame.data))
    except EmotionDetectionError as e:
        session.sampler.record_warning(e.message)
        return {"accepted": False, "warning": e.message}
    return {"accepted": True}


@router.post("/sessions/{session_id}/answers", response_model=SessionOut)
async def submit_answer(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    await session.submit_answer()
    return await _respond_and_release(session, registry)


@router.post("/sessions/{session_id}/complete", response_model=SessionOut)
async def complete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    await session.complete()
    return await _respond_and_release(session, registry)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.get(session_id)
    await registry.remove(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/reports/{report_id}")
async def get_report(report_id: str, store: SQLDocumentStore = Depends(get_store)):
    report = await store.get_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report
