"""Entity detection endpoints: per-manuscript, full-project, cross-book presence."""

from fastapi import APIRouter, HTTPException

from novelmap.db.sqlite_db import NotFoundError
from novelmap.services import detection_service

router = APIRouter(prefix="/api/projects/{project_id}", tags=["detection"])


@router.post("/manuscripts/{manuscript_id}/detect")
async def detect_in_manuscript(project_id: int, manuscript_id: int):
    """Find known entities in one manuscript and record new appearances."""
    try:
        result = await detection_service.detect_entities(project_id, manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump()


@router.post("/detect")
async def detect_in_project(project_id: int):
    try:
        result = await detection_service.detect_entities_full_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.model_dump()


@router.get("/cross-book-presence")
async def cross_book_presence(project_id: int):
    try:
        presence = await detection_service.get_cross_book_presence(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"entities": [p.model_dump() for p in presence]}
