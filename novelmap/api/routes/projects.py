"""Project and manuscript endpoints."""

from fastapi import APIRouter, HTTPException

from novelmap.api.schemas.requests import CreateManuscriptRequest, CreateProjectRequest
from novelmap.db import manuscript_store, project_store
from novelmap.db.sqlite_db import NotFoundError

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("")
async def create_project(req: CreateProjectRequest):
    project = await project_store.create_project(req.name, req.path)
    return project.model_dump()


@router.get("")
async def list_projects():
    projects = await project_store.list_projects()
    return {"projects": [p.model_dump() for p in projects]}


@router.get("/{project_id}")
async def get_project(project_id: int):
    try:
        project = await project_store.get_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return project.model_dump()


@router.delete("/{project_id}")
async def delete_project(project_id: int):
    try:
        await project_store.delete_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.post("/{project_id}/manuscripts")
async def create_manuscript(project_id: int, req: CreateManuscriptRequest):
    """Import a manuscript with its chapters in reading order."""
    try:
        manuscript = await manuscript_store.create_manuscript(
            project_id, req.title, req.file_path, req.chapters,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {**manuscript.model_dump(), "chapter_count": len(req.chapters)}


@router.get("/{project_id}/manuscripts")
async def list_manuscripts(project_id: int):
    try:
        await project_store.get_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    manuscripts = await manuscript_store.list_manuscripts(project_id)
    return {"manuscripts": [m.model_dump() for m in manuscripts]}


async def _manuscript_in_project(project_id: int, manuscript_id: int):
    manuscript = await manuscript_store.get_manuscript(manuscript_id)
    if manuscript.project_id != project_id:
        raise NotFoundError("manuscript", manuscript_id)
    return manuscript


@router.get("/{project_id}/manuscripts/{manuscript_id}")
async def get_manuscript(project_id: int, manuscript_id: int):
    """Manuscript with its chapter list (bodies omitted)."""
    try:
        manuscript = await _manuscript_in_project(project_id, manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    chapters = await manuscript_store.list_chapters(manuscript_id)
    return {
        **manuscript.model_dump(),
        "chapters": [c.model_dump(exclude={"body"}) for c in chapters],
    }


@router.delete("/{project_id}/manuscripts/{manuscript_id}")
async def delete_manuscript(project_id: int, manuscript_id: int):
    """Delete a manuscript; its chapters and appearances go with it."""
    try:
        await _manuscript_in_project(project_id, manuscript_id)
        await manuscript_store.delete_manuscript(manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}
