"""Entity extraction endpoints: scan, AI enhancement, cost estimate, confirm."""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from novelmap.api.schemas.requests import ConfirmRequest, EnhanceRequest, ExtractRequest
from novelmap.db.sqlite_db import NotFoundError
from novelmap.extraction.extraction_pipeline import LLMClassifierConfig, PipelineOptions
from novelmap.services import extraction_service

router = APIRouter(prefix="/api/projects/{project_id}/extract", tags=["extraction"])


@router.post("")
async def extract(project_id: int, req: ExtractRequest | None = None):
    """Scan and classify locally; no remote calls."""
    options = PipelineOptions(
        enable_llm=False,
        progress=extraction_service.progress_for_project(project_id),
    )
    try:
        result = await extraction_service.run_extraction(
            project_id, options, req.manuscript_id if req else None,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump()


@router.post("/enhance")
async def extract_enhanced(project_id: int, req: EnhanceRequest):
    """Scan, classify, then send low-confidence entities to the remote classifier.

    A remote failure still returns the local results (llm_enhanced = 0).
    """
    llm_config = LLMClassifierConfig(api_key=req.api_key, model=req.model) if req.api_key else None
    options = PipelineOptions(
        enable_llm=True,
        llm_config=llm_config,
        book_title=req.book_title,
        genre=req.genre,
        confidence_threshold=req.review_threshold,
        progress=extraction_service.progress_for_project(project_id),
    )
    try:
        result = await extraction_service.run_extraction(project_id, options, req.manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump()


@router.get("/estimate")
async def estimate(project_id: int):
    try:
        estimate = await extraction_service.estimate_enhancement(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return asdict(estimate)


@router.post("/confirm")
async def confirm(project_id: int, req: ConfirmRequest):
    """Create entities for accepted candidates and link them across the project."""
    try:
        created, detection = await extraction_service.confirm_candidates(
            project_id, req.candidates,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {
        "created": [e.model_dump() for e in created],
        "detection": detection.model_dump(),
    }
