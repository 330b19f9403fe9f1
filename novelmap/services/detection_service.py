"""Detect known entities in manuscript prose and record their appearances.

Each manuscript is processed in one ``BEGIN IMMEDIATE`` transaction. The
unique index on appearance(entity_id, chapter_id) plus ``INSERT OR IGNORE``
keeps repeated or concurrent runs from creating duplicate rows.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import aiosqlite

from novelmap.db.entity_store import decode_metadata
from novelmap.db.sqlite_db import NotFoundError, get_connection
from novelmap.extraction.gazetteer import Gazetteer, get_gazetteer
from novelmap.models.detection import (
    CrossBookEntity,
    CrossBookPresence,
    DetectionDetail,
    DetectionResult,
    ManuscriptPresence,
)
from novelmap.models.entity import parse_aliases

logger = logging.getLogger(__name__)

_AUTO_NOTE = "Auto-detected"
_MIN_VARIANT_LENGTH = 2
_MIN_FIRST_NAME_LENGTH = 3


@dataclass(frozen=True)
class EntityMatcher:
    entity_id: int
    name: str
    type: str
    pattern: re.Pattern


def name_variants(
    name: str,
    entity_type: str,
    metadata: dict | None,
    gazetteer: Gazetteer | None = None,
) -> list[str]:
    """Names to search for, longest first: primary name, aliases, bare first name.

    The primary name is always searched; shorter-than-two-character aliases
    are not.
    """
    gaz = gazetteer or get_gazetteer()
    primary = name.strip()
    variants = list(parse_aliases(metadata))

    tokens = name.split()
    if entity_type == "character" and len(tokens) > 1:
        first = tokens[0]
        if len(first) >= _MIN_FIRST_NAME_LENGTH and not gaz.is_noise(first):
            variants.append(first)

    seen: set[str] = {primary.lower()} if primary else set()
    unique: list[str] = [primary] if primary else []
    for variant in variants:
        v = variant.strip()
        if len(v) < _MIN_VARIANT_LENGTH or v.lower() in seen:
            continue
        seen.add(v.lower())
        unique.append(v)
    unique.sort(key=len, reverse=True)
    return unique


def build_matcher(
    entity_id: int,
    name: str,
    entity_type: str,
    metadata: dict | None,
    gazetteer: Gazetteer | None = None,
) -> EntityMatcher | None:
    variants = name_variants(name, entity_type, metadata, gazetteer)
    if not variants:
        return None
    # Alternation is tried left to right, so longer variants win at the same offset
    alternation = "|".join(re.escape(v) for v in variants)
    pattern = re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)
    return EntityMatcher(entity_id=entity_id, name=name, type=entity_type, pattern=pattern)


async def _fetch_manuscript(conn: aiosqlite.Connection, project_id: int, manuscript_id: int):
    cursor = await conn.execute(
        "SELECT id, title FROM manuscript WHERE id = ? AND project_id = ?",
        (manuscript_id, project_id),
    )
    row = await cursor.fetchone()
    if not row:
        raise NotFoundError("manuscript", manuscript_id)
    return row


async def _ensure_project(conn: aiosqlite.Connection, project_id: int) -> None:
    cursor = await conn.execute("SELECT 1 FROM project WHERE id = ?", (project_id,))
    if not await cursor.fetchone():
        raise NotFoundError("project", project_id)


async def _load_matchers(conn: aiosqlite.Connection, project_id: int) -> list[EntityMatcher]:
    cursor = await conn.execute(
        "SELECT id, name, type, metadata FROM entity WHERE project_id = ? ORDER BY id",
        (project_id,),
    )
    matchers: list[EntityMatcher] = []
    gaz = get_gazetteer()
    for row in await cursor.fetchall():
        matcher = build_matcher(
            row["id"], row["name"], row["type"],
            decode_metadata(row["metadata"], row["id"]), gaz,
        )
        if matcher is not None:
            matchers.append(matcher)
    return matchers


async def _detect_in_manuscript(
    conn: aiosqlite.Connection, project_id: int, manuscript_id: int
) -> DetectionResult:
    manuscript = await _fetch_manuscript(conn, project_id, manuscript_id)
    matchers = await _load_matchers(conn, project_id)
    if not matchers:
        return DetectionResult()

    cursor = await conn.execute(
        "SELECT id, title, body FROM chapter WHERE manuscript_id = ? ORDER BY order_index",
        (manuscript_id,),
    )
    chapters = await cursor.fetchall()

    cursor = await conn.execute(
        "SELECT entity_id, chapter_id FROM appearance WHERE manuscript_id = ?",
        (manuscript_id,),
    )
    existing = {(r["entity_id"], r["chapter_id"]) for r in await cursor.fetchall()}

    # Where each entity already appeared before this run
    cursor = await conn.execute(
        """
        SELECT DISTINCT a.entity_id, a.manuscript_id
        FROM appearance a JOIN entity e ON e.id = a.entity_id
        WHERE e.project_id = ?
        """,
        (project_id,),
    )
    prior_presence: dict[int, set[int]] = {}
    for r in await cursor.fetchall():
        prior_presence.setdefault(r["entity_id"], set()).add(r["manuscript_id"])

    result = DetectionResult()
    newly_present: dict[int, EntityMatcher] = {}

    for chapter in chapters:
        body = chapter["body"] or ""
        for matcher in matchers:
            matches = list(matcher.pattern.finditer(body))
            if not matches:
                continue
            result.total_matches += len(matches)

            created = False
            key = (matcher.entity_id, chapter["id"])
            if key not in existing:
                first = matches[0]
                cursor = await conn.execute(
                    """
                    INSERT OR IGNORE INTO appearance
                        (entity_id, manuscript_id, chapter_id,
                         text_range_start, text_range_end, notes)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (matcher.entity_id, manuscript_id, chapter["id"],
                     first.start(), first.end(), _AUTO_NOTE),
                )
                existing.add(key)
                if cursor.rowcount == 1:
                    created = True
                    result.new_appearances += 1
                    newly_present.setdefault(matcher.entity_id, matcher)

            for i, match in enumerate(matches):
                result.details.append(
                    DetectionDetail(
                        entity_id=matcher.entity_id,
                        entity_name=matcher.name,
                        entity_type=matcher.type,
                        manuscript_id=manuscript_id,
                        chapter_id=chapter["id"],
                        chapter_title=chapter["title"],
                        offset=match.start(),
                        end=match.end(),
                        matched_text=match.group(0),
                        is_new=created and i == 0,
                    )
                )

    if newly_present:
        result.cross_book_entities = await _cross_book(
            conn, project_id, manuscript, newly_present, prior_presence
        )
    return result


async def _cross_book(
    conn: aiosqlite.Connection,
    project_id: int,
    manuscript,
    newly_present: dict[int, EntityMatcher],
    prior_presence: dict[int, set[int]],
) -> list[CrossBookEntity]:
    cursor = await conn.execute(
        "SELECT id, title FROM manuscript WHERE project_id = ?", (project_id,)
    )
    titles = {r["id"]: r["title"] for r in await cursor.fetchall()}

    current_title = manuscript["title"] or f"Manuscript #{manuscript['id']}"
    entries: list[CrossBookEntity] = []
    for entity_id, matcher in newly_present.items():
        others = sorted(prior_presence.get(entity_id, set()) - {manuscript["id"]})
        if not others:
            continue
        entries.append(
            CrossBookEntity(
                entity_id=entity_id,
                entity_name=matcher.name,
                entity_type=matcher.type,
                existing_books=[titles.get(m) or f"Manuscript #{m}" for m in others],
                new_books=[current_title],
            )
        )
    return entries


async def detect_entities(project_id: int, manuscript_id: int) -> DetectionResult:
    """Scan one manuscript for every known project entity.

    Raises NotFoundError when the manuscript does not belong to the project.
    The run commits all of its new appearances or none of them.
    """
    conn = await get_connection()
    try:
        await conn.execute("BEGIN IMMEDIATE")
        try:
            result = await _detect_in_manuscript(conn, project_id, manuscript_id)
            await conn.commit()
        except Exception:
            await conn.rollback()
            raise
    finally:
        await conn.close()

    logger.info(
        "Detection on manuscript %s: %d matches, %d new appearances, %d cross-book",
        manuscript_id, result.total_matches, result.new_appearances,
        len(result.cross_book_entities),
    )
    return result


async def _list_manuscript_ids(project_id: int) -> list[int]:
    conn = await get_connection()
    try:
        await _ensure_project(conn, project_id)
        cursor = await conn.execute(
            "SELECT id FROM manuscript WHERE project_id = ? ORDER BY id", (project_id,)
        )
        return [r["id"] for r in await cursor.fetchall()]
    finally:
        await conn.close()


async def detect_entities_full_project(project_id: int) -> DetectionResult:
    """Run detection over every manuscript of a project.

    A manuscript that fails is rolled back, logged and listed in
    ``failed_manuscripts``; the rest still run.
    """
    manuscript_ids = await _list_manuscript_ids(project_id)

    combined = DetectionResult()
    cross_by_entity: dict[int, CrossBookEntity] = {}

    for manuscript_id in manuscript_ids:
        try:
            result = await detect_entities(project_id, manuscript_id)
        except Exception:
            logger.warning(
                "Detection failed for manuscript %s, continuing with the rest",
                manuscript_id, exc_info=True,
            )
            combined.failed_manuscripts.append(manuscript_id)
            continue

        combined.total_matches += result.total_matches
        combined.new_appearances += result.new_appearances
        combined.details.extend(result.details)
        for entry in result.cross_book_entities:
            merged = cross_by_entity.get(entry.entity_id)
            if merged is None:
                cross_by_entity[entry.entity_id] = entry.model_copy(deep=True)
                continue
            for book in entry.new_books:
                if book not in merged.new_books:
                    merged.new_books.append(book)
            for book in entry.existing_books:
                if book not in merged.existing_books:
                    merged.existing_books.append(book)

    combined.cross_book_entities = list(cross_by_entity.values())
    return combined


async def get_cross_book_presence(project_id: int) -> list[CrossBookPresence]:
    """Manuscripts each entity appears in (entities with no appearance are omitted)."""
    conn = await get_connection()
    try:
        await _ensure_project(conn, project_id)
        cursor = await conn.execute(
            """
            SELECT e.id AS entity_id, e.name, e.type,
                   m.id AS manuscript_id, m.title,
                   COUNT(DISTINCT a.chapter_id) AS chapter_count
            FROM appearance a
            JOIN entity e ON e.id = a.entity_id
            JOIN manuscript m ON m.id = a.manuscript_id
            WHERE e.project_id = ?
            GROUP BY e.id, m.id
            ORDER BY e.type, e.name, e.id, m.id
            """,
            (project_id,),
        )
        rows = await cursor.fetchall()
    finally:
        await conn.close()

    presence: dict[int, CrossBookPresence] = {}
    for row in rows:
        entry = presence.get(row["entity_id"])
        if entry is None:
            entry = CrossBookPresence(
                entity_id=row["entity_id"],
                entity_name=row["name"],
                entity_type=row["type"],
                manuscripts=[],
            )
            presence[row["entity_id"]] = entry
        entry.manuscripts.append(
            ManuscriptPresence(
                id=row["manuscript_id"],
                title=row["title"] or f"Manuscript #{row['manuscript_id']}",
                chapter_count=row["chapter_count"],
            )
        )
    return list(presence.values())
