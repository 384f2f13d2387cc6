from fastapi import APIRouter, Depends, File, Form, UploadFile

from ....core.config import GradingConfig, Settings, get_settings
from ....managers.resume import extract_pdf_text, score_resume
from ....managers.session import resolve_grading_config
from ....storage import SQLDocumentStore
from ..dependencies import get_store
from ..schemas import AtsResultOut, GradingConfigIn, GradingConfigOut

router = APIRouter(tags=["admin"])


def _config_out(config: GradingConfig) -> GradingConfigOut:
    return GradingConfigOut(
        mode=config.mode,
        effective_mode=config.effective_mode,
        has_api_key=bool(config.api_key),
    )


@router.get("/config/grading", response_model=GradingConfigOut)
async def read_grading_config(store: SQLDocumentStore = Depends(get_store),
                              settings: Settings = Depends(get_settings)):
    return _config_out(await resolve_grading_config(store, settings))


@router.put("/config/grading", response_model=GradingConfigOut)
async def save_grading_config(body: GradingConfigIn, store: SQLDocumentStore = Depends(get_store)):
    config = GradingConfig(mode=body.mode, api_key=body.api_key)
    await store.save_grading_config({"mode": config.mode.value, "apiKey": config.api_key})
    return _config_out(config)


@router.post("/resumes/ats", response_model=AtsResultOut)
async def check_resume(role: str = Form(...), resume: UploadFile = File(...)):
    """Extract a PDF resume's text and score it against the role's keywords."""
    text = extract_pdf_text(await resume.read())
    result = score_resume(text, role)
    return AtsResultOut(role=result.role, score=result.score,
                        matched=list(result.matched), missing=list(result.missing))
