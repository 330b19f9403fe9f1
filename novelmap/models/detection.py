"""Detection results and cross-book presence records."""

from __future__ import annotations

from pydantic import BaseModel

from novelmap.models.entity import EntityType


class DetectionDetail(BaseModel):
    entity_id: int
    entity_name: str
    entity_type: EntityType
    manuscript_id: int
    chapter_id: int
    chapter_title: str
    offset: int
    end: int
    matched_text: str
    is_new: bool = False


class CrossBookEntity(BaseModel):
    entity_id: int
    entity_name: str
    entity_type: EntityType
    existing_books: list[str]
    new_books: list[str]


class DetectionResult(BaseModel):
    total_matches: int = 0
    new_appearances: int = 0
    details: list[DetectionDetail] = []
    cross_book_entities: list[CrossBookEntity] = []
    failed_manuscripts: list[int] = []


class ManuscriptPresence(BaseModel):
    id: int
    title: str
    chapter_count: int


class CrossBookPresence(BaseModel):
    entity_id: int
    entity_name: str
    entity_type: EntityType
    manuscripts: list[ManuscriptPresence]
