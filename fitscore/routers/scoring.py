import asyncio
from typing import List

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from fitscore.models.models import DocumentKind, DocumentOrigin, DocumentRef
from fitscore.models.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    HistoryItem,
    ProfileDocumentStatus,
    UploadResponse,
)
from fitscore.services.resolver import document_status
from fitscore.utils.exceptions import ResourceNotFound, ValidationError
from fitscore.utils.logging_config import get_logger, log_api_call

logger = get_logger(__name__)

router = APIRouter()

PREVIEW_CHARS = 200


def get_orchestrator(request: Request):
    return request.app.state.orchestrator


async def _require_profile(orchestrator, profile_id: str) -> dict:
    profile = await orchestrator.profiles.get(profile_id)
    if not profile:
        raise ResourceNotFound("Profile not found", resource="profile", resource_id=profile_id)
    return profile


@router.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True)
@log_api_call("analyze_score")
async def analyze_score(body: AnalyzeRequest, orchestrator=Depends(get_orchestrator)):
    """Score a candidate document against a job description"""
    outcome = await orchestrator.run(body)
    return AnalyzeResponse.from_outcome(outcome)


@router.post("/upload", response_model=UploadResponse, response_model_by_alias=True)
@log_api_call("upload_document")
async def upload_document(
    document_type: DocumentKind = Form(...),
    file: UploadFile = File(...),
    orchestrator=Depends(get_orchestrator),
):
    """Store a temporary document and check that text can be extracted from it"""
    data = await file.read()
    if not data:
        raise ValidationError("Uploaded file is empty", field="file")

    store = orchestrator.extractor.store
    loop = asyncio.get_running_loop()
    locator = await loop.run_in_executor(None, store.upload, file.filename, data)

    ref = DocumentRef(kind=document_type, locator=locator, origin=DocumentOrigin.TEMPORARY)
    try:
        extracted = await orchestrator.extractor.extract(ref)
    except Exception:
        await loop.run_in_executor(None, store.delete, locator)
        raise

    logger.info(f"Accepted {document_type.value} upload {file.filename} ({extracted.char_count} characters)")
    return UploadResponse(
        document_type=document_type,
        locator=locator,
        preview=extracted.text[:PREVIEW_CHARS],
    )


@router.get("/history/{profile_id}", response_model=List[HistoryItem], response_model_by_alias=True)
@log_api_call("get_score_history")
async def get_score_history(profile_id: str, orchestrator=Depends(get_orchestrator)):
    """Most recent scoring results for a profile, newest first"""
    await _require_profile(orchestrator, profile_id)
    results = await orchestrator.results.find_by_profile(profile_id, limit=orchestrator.settings.history_page_size)
    return [HistoryItem.from_result(r) for r in results]


@router.get("/profile-status/{profile_id}", response_model=ProfileDocumentStatus, response_model_by_alias=True)
@log_api_call("get_profile_status")
async def get_profile_status(profile_id: str, orchestrator=Depends(get_orchestrator)):
    profile = await _require_profile(orchestrator, profile_id)
    return document_status(profile)
