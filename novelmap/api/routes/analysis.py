"""Genre detection and character role endpoints."""

from fastapi import APIRouter, HTTPException

from novelmap.db.sqlite_db import NotFoundError
from novelmap.services import genre_service, role_service

router = APIRouter(prefix="/api", tags=["analysis"])


@router.get("/manuscripts/{manuscript_id}/genre")
async def manuscript_genre(manuscript_id: int):
    try:
        analysis = await genre_service.analyze_genre(manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return analysis.model_dump()


@router.get("/projects/{project_id}/genre")
async def project_genre(project_id: int):
    """Per-book genres plus the series genre and recurring themes."""
    try:
        analysis = await genre_service.analyze_project_genre(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return analysis.model_dump()


@router.get("/projects/{project_id}/roles")
async def character_roles(project_id: int):
    """Classify characters from their recorded appearances; run detection first."""
    try:
        analysis = await role_service.classify_roles(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return analysis.model_dump()
