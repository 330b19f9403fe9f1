"""Tests for HTTP route handlers (called directly, no server)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException

from novelmap.api.routes import analysis, detection, entities, extraction, projects
from novelmap.api.schemas.requests import (
    ConfirmRequest,
    CreateManuscriptRequest,
    CreateProjectRequest,
    EnhanceRequest,
    ExtractRequest,
)
from novelmap.infra.llm_client import LLMError
from novelmap.models.entity import ChapterInput, EntityCreate, EntityUpdate
from novelmap.services.extraction_service import manager

_BOOK_ONE = [
    ChapterInput(title="One", body="Captain Ramsey said Wu was in Chicago. Ramsey nodded at Wu."),
    ChapterInput(title="Two", body="Wu flew to Chicago. The MSS watched Ramsey closely."),
]


async def _project_with_book():
    project = await projects.create_project(CreateProjectRequest(name="Thriller"))
    manuscript = await projects.create_manuscript(
        project["id"], CreateManuscriptRequest(title="Book One", chapters=_BOOK_ONE),
    )
    return project, manuscript


@pytest.mark.asyncio
async def test_project_and_manuscript_routes(db):
    project, manuscript = await _project_with_book()

    assert manuscript["chapter_count"] == 2
    listed = await projects.list_manuscripts(project["id"])
    assert [m["title"] for m in listed["manuscripts"]] == ["Book One"]
    assert (await projects.get_project(project["id"]))["name"] == "Thriller"
    assert len((await projects.list_projects())["projects"]) == 1


@pytest.mark.asyncio
async def test_manuscript_detail_and_delete(db):
    project, manuscript = await _project_with_book()

    detail = await projects.get_manuscript(project["id"], manuscript["id"])
    assert [c["title"] for c in detail["chapters"]] == ["One", "Two"]
    assert "body" not in detail["chapters"][0]

    other = await projects.create_project(CreateProjectRequest(name="Other"))
    with pytest.raises(HTTPException) as exc:
        await projects.delete_manuscript(other["id"], manuscript["id"])
    assert exc.value.status_code == 404

    assert await projects.delete_manuscript(project["id"], manuscript["id"]) == {"ok": True}
    with pytest.raises(HTTPException) as exc:
        await projects.get_manuscript(project["id"], manuscript["id"])
    assert exc.value.status_code == 404
    with pytest.raises(HTTPException) as exc:
        await entities.list_manuscript_appearances(manuscript["id"])
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_missing_project_is_404(db):
    with pytest.raises(HTTPException) as exc:
        await projects.get_project(404)
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        await entities.list_entities(404)
    assert exc.value.status_code == 404

    with pytest.raises(HTTPException) as exc:
        await detection.detect_in_project(404)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_entity_routes(db):
    project, _ = await _project_with_book()
    created = await entities.create_entity(
        project["id"], EntityCreate(type="character", name="Ramsey", metadata={"aka": "The Captain"}),
    )

    fetched = await entities.get_entity(created["id"])
    assert fetched["aliases"] == ["The Captain"]

    patched = await entities.update_entity(created["id"], EntityUpdate(type="organization"))
    assert patched["type"] == "organization"

    listed = await entities.list_entities(project["id"], type="organization")
    assert [e["name"] for e in listed["entities"]] == ["Ramsey"]

    assert await entities.delete_entity(created["id"]) == {"ok": True}
    with pytest.raises(HTTPException) as exc:
        await entities.get_entity(created["id"])
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_detection_routes(db):
    project, manuscript = await _project_with_book()
    ramsey = await entities.create_entity(project["id"], EntityCreate(type="character", name="Ramsey"))

    result = await detection.detect_in_manuscript(project["id"], manuscript["id"])
    assert result["total_matches"] == 3
    assert result["new_appearances"] == 2

    appearances = await entities.list_appearances(ramsey["id"])
    assert len(appearances["appearances"]) == 2

    by_manuscript = await entities.list_manuscript_appearances(manuscript["id"])
    assert by_manuscript["total"] == 2
    first = by_manuscript["appearances"][0]
    assert (await entities.get_appearance(first["id"]))["entity_id"] == ramsey["id"]
    in_chapter = await entities.list_chapter_appearances(first["chapter_id"])
    assert [a["id"] for a in in_chapter["appearances"]] == [first["id"]]

    presence = await detection.cross_book_presence(project["id"])
    assert presence["entities"][0]["manuscripts"][0]["chapter_count"] == 2

    removed = appearances["appearances"][0]["id"]
    assert await entities.delete_appearance(removed) == {"ok": True}
    with pytest.raises(HTTPException):
        await entities.delete_appearance(removed)

    with pytest.raises(HTTPException) as exc:
        await detection.detect_in_manuscript(project["id"], 999)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_extract_and_confirm(db):
    project, _ = await _project_with_book()

    result = await extraction.extract(project["id"], ExtractRequest())
    names = {e["name"] for e in result["entities"]}
    assert {"Ramsey", "Wu", "Chicago", "MSS"} <= names
    assert result["stats"]["llm_cost"] is None

    confirmed = await extraction.confirm(project["id"], ConfirmRequest(candidates=[
        EntityCreate(type="character", name="Ramsey"),
        EntityCreate(type="location", name="Chicago"),
    ]))
    assert [e["name"] for e in confirmed["created"]] == ["Ramsey", "Chicago"]
    assert confirmed["detection"]["new_appearances"] == 4

    # Confirming the same names again creates nothing
    again = await extraction.confirm(project["id"], ConfirmRequest(candidates=[
        EntityCreate(type="character", name="ramsey"),
    ]))
    assert again["created"] == []
    assert again["detection"]["new_appearances"] == 0

    # Confirmed names are no longer proposed
    rescanned = await extraction.extract(project["id"], ExtractRequest())
    assert "Ramsey" not in {e["name"] for e in rescanned["entities"]}


@pytest.mark.asyncio
async def test_enhance_degrades_when_remote_fails(db):
    project, _ = await _project_with_book()
    failing = MagicMock()
    failing.model = "claude-haiku-4-5"
    failing.generate = AsyncMock(side_effect=LLMError("HTTP 500"))

    # Send every entity to the remote classifier
    req = EnhanceRequest(api_key="sk-test", book_title="Book One", review_threshold=100)
    with patch("novelmap.infra.anthropic_client.AnthropicClient", return_value=failing):
        result = await extraction.extract_enhanced(project["id"], req)

    assert failing.generate.await_count == 1
    # No genre given: detected from the prose
    assert 'Book: "Book One" (General Fiction)' in failing.generate.call_args.kwargs["prompt"]
    assert len(result["needs_review"]) == len(result["entities"])

    assert result["stats"]["llm_enhanced"] == 0
    assert result["stats"]["llm_cost"] is None


@pytest.mark.asyncio
async def test_estimate_route(db):
    project, _ = await _project_with_book()
    estimate = await extraction.estimate(project["id"])
    assert estimate["estimated_input_tokens"] >= 400
    assert estimate["candidate_count"] >= 0


@pytest.mark.asyncio
async def test_progress_is_broadcast_to_websocket_clients(db):
    project, _ = await _project_with_book()
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_json = AsyncMock()

    await manager.connect(project["id"], ws)
    try:
        await extraction.extract(project["id"], ExtractRequest())
    finally:
        manager.disconnect(project["id"], ws)

    payloads = [call.args[0] for call in ws.send_json.call_args_list]
    assert payloads[0] == {
        "stage": "scan",
        "detail": "Scanning manuscripts for entity candidates...",
        "project_id": project["id"],
    }
    assert {p["stage"] for p in payloads} >= {"scan", "enhance"}


@pytest.mark.asyncio
async def test_analysis_routes(db):
    project, manuscript = await _project_with_book()
    await entities.create_entity(project["id"], EntityCreate(type="character", name="Ramsey"))
    await detection.detect_in_project(project["id"])

    roles = await analysis.character_roles(project["id"])
    assert roles["characters"][0]["entity_name"] == "Ramsey"
    assert roles["characters"][0]["role"] == "protagonist"

    genre = await analysis.manuscript_genre(manuscript["id"])
    assert genre["primary_genre"] == "General Fiction"
    series = await analysis.project_genre(project["id"])
    assert series["series_genre"] == "General Fiction"

    for call in (
        analysis.character_roles(404),
        analysis.project_genre(404),
        analysis.manuscript_genre(404),
    ):
        with pytest.raises(HTTPException) as exc:
            await call
        assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_health():
    from novelmap.api.main import health

    body = await health()
    assert body["status"] == "ok"
    assert "llm_model" in body
