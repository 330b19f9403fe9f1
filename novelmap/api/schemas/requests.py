"""Pydantic request schemas for project, extraction and detection endpoints."""

from pydantic import BaseModel, Field

from novelmap.infra import config
from novelmap.models.entity import ChapterInput, EntityCreate


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1)
    path: str = ""


class CreateManuscriptRequest(BaseModel):
    title: str = Field(min_length=1)
    file_path: str = ""
    chapters: list[ChapterInput] = []


class ExtractRequest(BaseModel):
    manuscript_id: int | None = None  # None scans the whole project


class EnhanceRequest(BaseModel):
    manuscript_id: int | None = None
    book_title: str = "Untitled"
    genre: str | None = None  # None detects it from the prose
    api_key: str | None = None  # overrides ANTHROPIC_API_KEY for this request
    model: str | None = None
    review_threshold: int = Field(default=config.REVIEW_CONFIDENCE_THRESHOLD, ge=0, le=100)


class ConfirmRequest(BaseModel):
    candidates: list[EntityCreate]
