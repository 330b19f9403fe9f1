"""Genre and character-role analysis results."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

CharacterRole = Literal[
    "protagonist", "deuteragonist", "antagonist", "supporting", "minor", "mentioned",
]
PeakAct = Literal["opening", "middle", "climax", "throughout"]


class GenreSignal(BaseModel):
    genre: str
    sub_genres: list[str] = []
    confidence: float  # 0-1
    markers: list[str] = []


class GenreAnalysis(BaseModel):
    manuscript_id: int
    manuscript_title: str
    primary_genre: str
    genres: list[GenreSignal] = []
    word_count: int = 0
    suggested_categories: list[str] = []
    themes: list[str] = []


class ProjectGenreAnalysis(BaseModel):
    project_id: int
    manuscripts: list[GenreAnalysis] = []
    series_genre: str
    recurring_themes: list[str] = []
    genre_consistency: str = ""


class ManuscriptRole(BaseModel):
    manuscript_id: int
    manuscript_title: str
    role: CharacterRole
    chapter_appearances: int
    total_chapters: int


class CharacterRoleResult(BaseModel):
    entity_id: int
    entity_name: str
    role: CharacterRole
    confidence: float  # 0-1
    presence_ratio: float
    narrative_weight: float
    peak_act: PeakAct
    antagonist_signals: list[str] = []
    per_manuscript: list[ManuscriptRole] = []


class RoleShiftEntry(BaseModel):
    manuscript_title: str
    role: CharacterRole


class RoleShift(BaseModel):
    entity_id: int
    entity_name: str
    shifts: list[RoleShiftEntry]


class RoleAnalysis(BaseModel):
    project_id: int
    characters: list[CharacterRoleResult] = []
    role_shifts: list[RoleShift] = []
