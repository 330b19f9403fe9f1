"""Persisted records: projects, manuscripts, chapters, entities, appearances."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field

EntityType = Literal["character", "location", "organization", "artifact", "concept", "event"]

ENTITY_TYPES: tuple[str, ...] = (
    "character", "location", "organization", "artifact", "concept", "event",
)

# Entity metadata is an open map, but values stay primitive so it round-trips through JSON.
MetadataValue = Union[str, int, float, bool, None]

# Metadata keys that may carry alternate names, in lookup order
_ALIAS_KEYS = ("aliases", "alias", "nicknames", "nickname", "aka", "also_known_as")

_MIN_ALIAS_LENGTH = 2


def parse_aliases(metadata: dict | None) -> list[str]:
    """Return the alias list stored in entity metadata.

    Aliases are comma-separated strings under any of the alias keys. Items
    shorter than two characters are dropped; duplicates (case-insensitive)
    keep their first spelling.
    """
    if not metadata:
        return []
    aliases: list[str] = []
    seen: set[str] = set()
    for key in _ALIAS_KEYS:
        raw = metadata.get(key)
        if raw is None:
            continue
        if isinstance(raw, (list, tuple)):
            items = [str(v) for v in raw]
        elif isinstance(raw, str):
            items = raw.split(",")
        else:
            continue
        for item in items:
            alias = item.strip()
            if len(alias) < _MIN_ALIAS_LENGTH or alias.lower() in seen:
                continue
            seen.add(alias.lower())
            aliases.append(alias)
    return aliases


class Project(BaseModel):
    id: int
    name: str
    path: str = ""
    created_at: str | None = None


class Manuscript(BaseModel):
    id: int
    project_id: int
    title: str
    file_path: str = ""
    created_at: str | None = None


class Chapter(BaseModel):
    id: int
    manuscript_id: int
    title: str
    order_index: int
    body: str = ""


class ChapterInput(BaseModel):
    title: str
    body: str = ""


class Entity(BaseModel):
    id: int
    project_id: int
    type: EntityType
    name: str
    metadata: dict[str, MetadataValue] = {}
    created_at: str | None = None

    @property
    def aliases(self) -> list[str]:
        return parse_aliases(self.metadata)


class EntityCreate(BaseModel):
    """Write-path validation for new entities."""

    type: EntityType
    name: str = Field(min_length=1)
    metadata: dict[str, MetadataValue] = {}


class EntityUpdate(BaseModel):
    type: EntityType | None = None
    name: str | None = Field(default=None, min_length=1)
    metadata: dict[str, MetadataValue] | None = None


class Appearance(BaseModel):
    id: int
    entity_id: int
    manuscript_id: int
    chapter_id: int
    text_range_start: int | None = None
    text_range_end: int | None = None
    notes: str | None = None
