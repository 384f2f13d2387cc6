import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...core.config import get_settings
from ...core.exceptions import (
    EmotionDetectionError,
    FaceHireError,
    InterviewNotFound,
    InvalidSessionTransition,
    NoAnswerCaptured,
    NoQuestionsAvailable,
    PersistenceError,
    QuestionBankError,
    SessionNotFound,
)
from ...core.logging import get_logger, setup_logging
from ...managers.resume import ResumeError
from ...managers.session import SessionRegistry
from ...processors.emotion import CascadeExpressionClassifier
from ...storage import SQLDocumentStore
from .schemas import ErrorOut

logger = get_logger(__name__)

ERROR_STATUS = {
    InterviewNotFound: status.HTTP_404_NOT_FOUND,
    SessionNotFound: status.HTTP_404_NOT_FOUND,
    InvalidSessionTransition: status.HTTP_409_CONFLICT,
    NoQuestionsAvailable: status.HTTP_422_UNPROCESSABLE_ENTITY,
    NoAnswerCaptured: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ResumeError: status.HTTP_400_BAD_REQUEST,
    QuestionBankError: status.HTTP_503_SERVICE_UNAVAILABLE,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_RESPONSES = {
    code: {"model": ErrorOut} for code in sorted(set(ERROR_STATUS.values()))
}


def _load_classifier():
    try:
        return CascadeExpressionClassifier()
    except EmotionDetectionError as e:
        logger.warning("face_detector_unavailable", error=e.message)
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    app.state.store = SQLDocumentStore(settings.DATABASE_URL)
    await app.state.store.init()
    app.state.sessions = SessionRegistry()
    app.state.classifier = _load_classifier()
    pruner = asyncio.create_task(app.state.sessions.prune_forever(
        settings.SESSION_IDLE_TIMEOUT_SECONDS, settings.SESSION_PRUNE_INTERVAL_SECONDS))
    logger.info("app_started", database=settings.DATABASE_URL)
    try:
        yield
    finally:
        pruner.cancel()
        try:
            await pruner
        except asyncio.CancelledError:
            pass
        await app.state.sessions.close_all()
        await app.state.store.close()


async def facehire_error_handler(request: Request, exc: FaceHireError) -> JSONResponse:
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code, "message": exc.message, "details": exc.details},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        debug=settings.DEBUG,
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with actual origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(FaceHireError, facehire_error_handler)

    # Include routers
    from .routers import admin, health, interviews, sessions
    app.include_router(health.router, prefix=settings.API_PREFIX)
    app.include_router(interviews.router, prefix=settings.API_PREFIX, responses=ERROR_RESPONSES)
    app.include_router(sessions.router, prefix=settings.API_PREFIX, responses=ERROR_RESPONSES)
    app.include_router(admin.router, prefix=settings.API_PREFIX, responses=ERROR_RESPONSES)

    return app
