"""Entity CRUD and appearance endpoints."""

from fastapi import APIRouter, HTTPException, Query

from novelmap.db import appearance_store, entity_store, manuscript_store, project_store
from novelmap.db.sqlite_db import NotFoundError
from novelmap.models.entity import EntityCreate, EntityUpdate

router = APIRouter(prefix="/api", tags=["entities"])


@router.get("/projects/{project_id}/entities")
async def list_entities(
    project_id: int,
    type: str | None = Query(None, description="Filter by entity type"),
):
    try:
        await project_store.get_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    entities = await entity_store.list_entities(project_id, type)
    return {"entities": [e.model_dump() for e in entities]}


@router.post("/projects/{project_id}/entities")
async def create_entity(project_id: int, req: EntityCreate):
    try:
        await project_store.get_project(project_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    entity = await entity_store.create_entity(project_id, req)
    return entity.model_dump()


@router.get("/entities/{entity_id}")
async def get_entity(entity_id: int):
    try:
        entity = await entity_store.get_entity(entity_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {**entity.model_dump(), "aliases": entity.aliases}


@router.patch("/entities/{entity_id}")
async def update_entity(entity_id: int, req: EntityUpdate):
    try:
        entity = await entity_store.update_entity(entity_id, req)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return entity.model_dump()


@router.delete("/entities/{entity_id}")
async def delete_entity(entity_id: int):
    """Delete an entity; its appearances go with it."""
    try:
        await entity_store.delete_entity(entity_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.get("/entities/{entity_id}/appearances")
async def list_appearances(entity_id: int):
    try:
        await entity_store.get_entity(entity_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    appearances = await appearance_store.list_for_entity(entity_id)
    return {"appearances": [a.model_dump() for a in appearances]}


@router.delete("/appearances/{appearance_id}")
async def delete_appearance(appearance_id: int):
    try:
        await appearance_store.delete_appearance(appearance_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"ok": True}


@router.get("/appearances/{appearance_id}")
async def get_appearance(appearance_id: int):
    try:
        appearance = await appearance_store.get_appearance(appearance_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return appearance.model_dump()


@router.get("/chapters/{chapter_id}/appearances")
async def list_chapter_appearances(chapter_id: int):
    """Appearances in one chapter, in text order."""
    appearances = await appearance_store.list_for_chapter(chapter_id)
    return {"appearances": [a.model_dump() for a in appearances]}


@router.get("/manuscripts/{manuscript_id}/appearances")
async def list_manuscript_appearances(manuscript_id: int):
    try:
        await manuscript_store.get_manuscript(manuscript_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    appearances = await appearance_store.list_for_manuscript(manuscript_id)
    return {
        "total": await appearance_store.count_for_manuscript(manuscript_id),
        "appearances": [a.model_dump() for a in appearances],
    }
