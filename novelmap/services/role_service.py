"""Character role classification from recorded appearances.

Roles come from chapter presence and narrative weight. An appearance in
the opening or closing 15% of a book counts double, and antagonist
vocabulary near the character's name can turn a lead into an antagonist.
Per-manuscript roles expose characters whose role changes between books.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass

import aiosqlite

from novelmap.db.sqlite_db import NotFoundError, get_connection
from novelmap.models.analysis import (
    CharacterRole,
    CharacterRoleResult,
    ManuscriptRole,
    PeakAct,
    RoleAnalysis,
    RoleShift,
    RoleShiftEntry,
)

logger = logging.getLogger(__name__)

ANTAGONIST_CONTEXT_WORDS = (
    "enemy", "threat", "villain", "oppose", "against", "menace",
    "rival", "adversary", "betray", "scheme", "plot against",
    "destroy", "conquer", "dominate", "terrorize", "ruthless",
    "sinister", "malicious", "devious", "manipulate", "deceive",
)

_SIGNAL_WINDOW = 250
_MAX_SIGNALS = 5
_EDGE_FRACTION = 0.15

_ROLE_ORDER: dict[str, int] = {
    "protagonist": 0, "deuteragonist": 1, "antagonist": 2,
    "supporting": 3, "minor": 4, "mentioned": 5,
}


@dataclass(frozen=True)
class _Sighting:
    """One appearance row joined with its chapter."""

    chapter_id: int
    manuscript_id: int
    order_index: int
    body: str


def _position(order_index: int, chapters_in_book: int) -> float:
    return order_index / max(chapters_in_book - 1, 1)


def _narrative_weight(position: float) -> int:
    edge = position < _EDGE_FRACTION or position > 1 - _EDGE_FRACTION
    return 2 if edge else 1


def role_for_presence(presence_ratio: float) -> CharacterRole:
    """Role within a single book, from the share of chapters the character is in."""
    if presence_ratio >= 0.6:
        return "protagonist"
    if presence_ratio >= 0.35:
        return "deuteragonist"
    if presence_ratio >= 0.15:
        return "supporting"
    return "minor"


def overall_role(
    sightings: int, presence_ratio: float, narrative_weight: float, antagonist_signals: int,
) -> CharacterRole:
    if sightings == 0:
        return "mentioned"
    if presence_ratio >= 0.6 and narrative_weight >= 0.5:
        return "antagonist" if antagonist_signals >= 3 else "protagonist"
    if presence_ratio >= 0.35 and narrative_weight >= 0.3:
        return "antagonist" if antagonist_signals >= 3 else "deuteragonist"
    if presence_ratio >= 0.15:
        return "antagonist" if antagonist_signals >= 2 else "supporting"
    return "minor"


def peak_act(sightings: list[_Sighting], book_sizes: dict[int, int]) -> PeakAct:
    if not sightings:
        return "middle"
    opening = middle = climax = 0
    for s in sightings:
        pos = _position(s.order_index, book_sizes.get(s.manuscript_id, 0))
        if pos < 0.33:
            opening += 1
        elif pos < 0.66:
            middle += 1
        else:
            climax += 1

    total = len(sightings)
    if opening / total > 0.2 and middle / total > 0.2 and climax / total > 0.2:
        return "throughout"
    if opening >= middle and opening >= climax:
        return "opening"
    if climax >= middle:
        return "climax"
    return "middle"


def antagonist_signals(sightings: list[_Sighting], name: str) -> list[str]:
    """Antagonist words within 250 chars of the name's first mention, per chapter."""
    name_lower = name.lower()
    found: list[str] = []
    seen_chapters: set[int] = set()
    for s in sightings:
        if s.chapter_id in seen_chapters:
            continue
        seen_chapters.add(s.chapter_id)

        body = s.body.lower()
        at = body.find(name_lower)
        if at == -1:
            continue
        window = body[max(0, at - _SIGNAL_WINDOW):at + len(name_lower) + _SIGNAL_WINDOW]
        for word in ANTAGONIST_CONTEXT_WORDS:
            if word in window and word not in found:
                found.append(word)
    return found[:_MAX_SIGNALS]


def _role_shifts(characters: list[CharacterRoleResult]) -> list[RoleShift]:
    shifts: list[RoleShift] = []
    for char in characters:
        if len(char.per_manuscript) < 2:
            continue
        significant = {
            pm.role for pm in char.per_manuscript if pm.role not in ("minor", "mentioned")
        }
        if len(significant) >= 2:
            shifts.append(RoleShift(
                entity_id=char.entity_id,
                entity_name=char.entity_name,
                shifts=[
                    RoleShiftEntry(manuscript_title=pm.manuscript_title, role=pm.role)
                    for pm in char.per_manuscript
                ],
            ))
    return shifts


async def _load(conn: aiosqlite.Connection, project_id: int):
    cursor = await conn.execute("SELECT 1 FROM project WHERE id = ?", (project_id,))
    if not await cursor.fetchone():
        raise NotFoundError("project", project_id)

    cursor = await conn.execute(
        "SELECT id, name FROM entity WHERE project_id = ? AND type = 'character' ORDER BY name",
        (project_id,),
    )
    characters = await cursor.fetchall()

    cursor = await conn.execute(
        """
        SELECT m.id, m.title, COUNT(c.id) AS chapters
        FROM manuscript m
        LEFT JOIN chapter c ON c.manuscript_id = m.id
        WHERE m.project_id = ?
        GROUP BY m.id
        ORDER BY m.id
        """,
        (project_id,),
    )
    manuscripts = await cursor.fetchall()

    cursor = await conn.execute(
        """
        SELECT a.entity_id, a.chapter_id, a.manuscript_id, c.order_index, c.body
        FROM appearance a
        JOIN chapter c ON c.id = a.chapter_id
        JOIN entity e ON e.id = a.entity_id
        WHERE e.project_id = ? AND e.type = 'character'
        ORDER BY a.manuscript_id, c.order_index
        """,
        (project_id,),
    )
    sightings: dict[int, list[_Sighting]] = defaultdict(list)
    for row in await cursor.fetchall():
        sightings[row["entity_id"]].append(_Sighting(
            chapter_id=row["chapter_id"],
            manuscript_id=row["manuscript_id"],
            order_index=row["order_index"],
            body=row["body"] or "",
        ))
    return characters, manuscripts, sightings


async def classify_roles(project_id: int) -> RoleAnalysis:
    """Classify every character entity in the project.

    Raises NotFoundError for an unknown project.
    """
    conn = await get_connection()
    try:
        characters, manuscripts, sightings_by_entity = await _load(conn, project_id)
    finally:
        await conn.close()

    book_sizes = {m["id"]: m["chapters"] for m in manuscripts}
    total_chapters = max(sum(book_sizes.values()), 1)

    results: list[CharacterRoleResult] = []
    for char in characters:
        sightings = sightings_by_entity.get(char["id"], [])

        per_manuscript: list[ManuscriptRole] = []
        for m in manuscripts:
            in_book = {s.chapter_id for s in sightings if s.manuscript_id == m["id"]}
            if not in_book:
                continue
            per_manuscript.append(ManuscriptRole(
                manuscript_id=m["id"],
                manuscript_title=m["title"],
                role=role_for_presence(len(in_book) / max(m["chapters"], 1)),
                chapter_appearances=len(in_book),
                total_chapters=m["chapters"],
            ))

        presence = len({s.chapter_id for s in sightings}) / total_chapters
        weight = sum(
            _narrative_weight(_position(s.order_index, book_sizes[s.manuscript_id]))
            for s in sightings
        ) / total_chapters
        signals = antagonist_signals(sightings, char["name"])

        results.append(CharacterRoleResult(
            entity_id=char["id"],
            entity_name=char["name"],
            role=overall_role(len(sightings), presence, weight, len(signals)),
            confidence=round(min(1.0, presence * 2 + weight), 2),
            presence_ratio=round(presence, 2),
            narrative_weight=round(weight, 2),
            peak_act=peak_act(sightings, book_sizes),
            antagonist_signals=signals,
            per_manuscript=per_manuscript,
        ))

    results.sort(key=lambda r: (_ROLE_ORDER[r.role], -r.presence_ratio))
    logger.info("Project %s: classified %d characters", project_id, len(results))
    return RoleAnalysis(
        project_id=project_id,
        characters=results,
        role_shifts=_role_shifts(results),
    )
