"""Extraction orchestration: scan a project, classify candidates, confirm them."""

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import WebSocket

from novelmap.db import entity_store, manuscript_store, project_store
from novelmap.extraction.candidate_scanner import EntityCandidateScanner
from novelmap.extraction.extraction_pipeline import PipelineOptions, run_pipeline
from novelmap.infra.progress import ProgressChannel, ProgressEvent
from novelmap.models.detection import DetectionResult
from novelmap.models.entity import Entity, EntityCreate
from novelmap.models.extraction import PipelineResult
from novelmap.services import genre_service
from novelmap.services.cost_service import (
    ClassificationCostEstimate,
    estimate_classification_cost,
)
from novelmap.services.detection_service import detect_entities_full_project

logger = logging.getLogger(__name__)


class _ConnectionManager:
    """Manage WebSocket connections per project_id for extraction progress."""

    def __init__(self):
        self._connections: dict[int, list[WebSocket]] = {}

    async def connect(self, project_id: int, ws: WebSocket) -> None:
        await ws.accept()
        self._connections.setdefault(project_id, []).append(ws)

    def disconnect(self, project_id: int, ws: WebSocket) -> None:
        conns = self._connections.get(project_id, [])
        if ws in conns:
            conns.remove(ws)

    async def broadcast(self, project_id: int, data: dict) -> None:
        conns = self._connections.get(project_id, [])
        dead: list[WebSocket] = []
        payload = {**data, "project_id": project_id}
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)
        for ws in dead:
            conns.remove(ws)


# Module-level singleton
manager = _ConnectionManager()


def progress_for_project(project_id: int) -> ProgressChannel:
    """A progress channel that forwards every event to the project's sockets."""
    channel = ProgressChannel()

    async def _forward(event: ProgressEvent) -> None:
        await manager.broadcast(project_id, event.to_dict())

    channel.subscribe(_forward)
    return channel


async def run_extraction(
    project_id: int,
    options: PipelineOptions | None = None,
    manuscript_id: int | None = None,
) -> PipelineResult:
    """Scan the project's prose and classify what the scanner found."""
    await project_store.get_project(project_id)
    opts = options or PipelineOptions()
    if opts.enable_llm and not opts.genre:
        genre = await genre_service.detect_primary_genre(project_id, manuscript_id)
        opts = replace(opts, genre=genre)
    if opts.progress is not None:
        await opts.progress.emit("scan", "Scanning manuscripts for entity candidates...")

    scanner_result = await EntityCandidateScanner().scan(project_id, manuscript_id)
    total_chapters = await manuscript_store.count_project_chapters(project_id)
    logger.info(
        "Project %s: %d candidates from %d chapters",
        project_id, len(scanner_result.candidates), total_chapters,
    )
    return await run_pipeline(scanner_result, total_chapters, opts)


async def estimate_enhancement(project_id: int) -> ClassificationCostEstimate:
    """Price remote classification of the candidates that would need review."""
    result = await run_extraction(project_id, PipelineOptions(enable_llm=False))
    return estimate_classification_cost(len(result.needs_review))


async def confirm_candidates(
    project_id: int, candidates: list[EntityCreate]
) -> tuple[list[Entity], DetectionResult]:
    """Create entities for accepted candidates, then link them across the project.

    Names that already exist (case-insensitive) are skipped.
    """
    await project_store.get_project(project_id)
    created = await entity_store.create_entities_if_absent(project_id, candidates)
    logger.info(
        "Project %s: confirmed %d of %d candidates",
        project_id, len(created), len(candidates),
    )
    detection = await detect_entities_full_project(project_id)
    return created, detection
