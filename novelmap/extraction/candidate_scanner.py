"""Statistical candidate scan over English prose.

Finds capitalized phrases (1-4 words) and short acronyms, discounts words
that mostly appear at sentence starts, scores the rest on frequency, chapter
spread and shape, and suggests a type for each. CPU-bound; the async entry
point runs it in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field

from novelmap.db import entity_store, manuscript_store
from novelmap.extraction.entity_classifier import score_context
from novelmap.extraction.gazetteer import Gazetteer, get_gazetteer
from novelmap.models.entity import EntityType
from novelmap.models.extraction import ExtractionCandidate, ScannerResult

logger = logging.getLogger(__name__)

_PHRASE = re.compile(r"\b([A-Z][a-z]+(?:'s)?(?:\s+[A-Z][a-z]+(?:'s)?){0,3})\b")
_ACRONYM_TOKEN = re.compile(r"\b([A-Z]{2,6})\b")
_ACRONYM = re.compile(r"^[A-Z]{2,6}$")
_POSSESSIVE = re.compile(r"'s\b")
_SENTENCE_BOUNDARY = re.compile(r"[.!?]\s+")
_PARAGRAPH_BREAK = re.compile(r"\n\n\s*")
_OPEN_QUOTES = ('"', "“")

_CONTEXT_WINDOW = 40
_MAX_CONTEXTS = 10
_KEPT_CONTEXTS = 3
_MAX_CANDIDATES = 200


@dataclass
class _Tally:
    text: str
    total: int = 0
    sentence_starts: int = 0
    chapters: set[int] = field(default_factory=set)

    def add(self, chapter_index: int, at_sentence_start: bool) -> None:
        self.total += 1
        self.chapters.add(chapter_index)
        if at_sentence_start:
            self.sentence_starts += 1


def _sentence_starts(text: str) -> set[int]:
    starts = {0}
    starts.update(m.end() for m in _SENTENCE_BOUNDARY.finditer(text))
    starts.update(m.end() for m in _PARAGRAPH_BREAK.finditer(text))
    return starts


def _is_sentence_start(pos: int, text: str, starts: set[int]) -> bool:
    if any(i in starts for i in range(pos, max(0, pos - 3) - 1, -1)):
        return True
    # Dialogue: "Wu said" opens with a quote mark
    if pos > 0 and text[pos - 1] in _OPEN_QUOTES:
        return any(i in starts for i in range(pos - 1, max(0, pos - 4) - 1, -1))
    return False


def _context_snippets(full_text: str, target: str, limit: int) -> list[str]:
    snippets: list[str] = []
    lower = full_text.lower()
    needle = target.lower()
    idx = 0
    while len(snippets) < limit:
        idx = lower.find(needle, idx)
        if idx == -1:
            break
        start = max(0, idx - _CONTEXT_WINDOW)
        end = min(len(full_text), idx + len(needle) + _CONTEXT_WINDOW)
        snippet = full_text[start:end].replace("\n", " ")
        if start > 0:
            snippet = "…" + snippet
        if end < len(full_text):
            snippet += "…"
        snippets.append(snippet)
        idx += len(needle)
    return snippets


def _confidence_bucket(score: float) -> str:
    if score >= 60:
        return "high"
    if score >= 35:
        return "medium"
    return "low"


class EntityCandidateScanner:
    """Scans manuscript prose for entity candidates not yet in the project."""

    def __init__(self, gazetteer: Gazetteer | None = None):
        self.gazetteer = gazetteer or get_gazetteer()

    async def scan(self, project_id: int, manuscript_id: int | None = None) -> ScannerResult:
        """Load chapters (one manuscript or the whole project) and scan them."""
        bodies = await manuscript_store.list_chapter_bodies(project_id, manuscript_id)
        if not bodies:
            logger.info("Candidate scan skipped: no chapters for project %s", project_id)
            return ScannerResult()

        existing = await entity_store.list_entity_names(project_id)
        result = await asyncio.to_thread(self.scan_chapters, bodies, existing)
        logger.info(
            "Candidate scan finished: %d candidates from %d chapters (project %s)",
            len(result.candidates), len(bodies), project_id,
        )
        return result

    # ------------------------------------------------------------------
    # Sync core
    # ------------------------------------------------------------------

    def scan_chapters(self, bodies: list[str], existing_names: list[str]) -> ScannerResult:
        if not bodies:
            return ScannerResult(existing_entities=list(existing_names))

        tallies: dict[str, _Tally] = {}
        for index, body in enumerate(bodies):
            self._scan_text(body, index, tallies)

        full_text = "\n\n".join(bodies)
        existing_lower = {n.lower() for n in existing_names}
        scored: list[ExtractionCandidate] = []
        for tally in tallies.values():
            cand = self._score(tally, len(bodies), full_text, existing_lower)
            if cand is not None:
                scored.append(cand)

        deduped = self._deduplicate(scored)
        deduped.sort(key=lambda c: c.score, reverse=True)
        return ScannerResult(
            candidates=deduped[:_MAX_CANDIDATES],
            existing_entities=list(existing_names),
        )

    def _scan_text(self, text: str, chapter_index: int, tallies: dict[str, _Tally]) -> None:
        gaz = self.gazetteer
        starts = _sentence_starts(text)

        def _add(name: str, at_start: bool) -> None:
            tallies.setdefault(name, _Tally(name)).add(chapter_index, at_start)

        for match in _PHRASE.finditer(text):
            clean = _POSSESSIVE.sub("", match.group(1))
            if len(clean) < 2:
                continue
            at_start = _is_sentence_start(match.start(), text, starts)

            # "But Knox" -> "Knox"
            words = clean.split()
            while len(words) > 1 and gaz.is_noise(words[0]):
                words.pop(0)
            clean = " ".join(words)
            if len(clean) < 2 or gaz.is_noise(clean):
                continue

            _add(clean, at_start)
            if len(words) > 1:
                for word in words:
                    if len(word) >= 2 and not gaz.is_noise(word):
                        _add(word, at_start)

        for match in _ACRONYM_TOKEN.finditer(text):
            token = match.group(1)
            if gaz.is_acronym_skip(token) or gaz.is_caps_noise(token):
                continue
            _add(token, _is_sentence_start(match.start(), text, starts))

    def _score(
        self,
        tally: _Tally,
        total_chapters: int,
        full_text: str,
        existing_lower: set[str],
    ) -> ExtractionCandidate | None:
        gaz = self.gazetteer
        text = tally.text
        if gaz.is_noise(text) or gaz.is_street_address(text):
            return None
        if text.lower() in existing_lower:
            return None

        is_acronym = _ACRONYM.match(text) is not None
        if tally.total < 2 and not is_acronym:
            return None

        word_count = len(text.split())
        start_ratio = tally.sentence_starts / tally.total
        # Words that (almost) only ever open a sentence are rarely names
        if start_ratio >= 1.0 and tally.total < 6 and word_count == 1:
            return None
        if start_ratio > 0.9 and tally.total < 4:
            return None

        frequency_score = min(25, tally.total * 3)
        spread_score = min(25.0, len(tally.chapters) / total_chapters * 25)
        non_start_score = (1 - start_ratio) * 25
        if is_acronym:
            shape_score = 15
        elif word_count >= 2:
            shape_score = 20
        elif len(text) >= 3:
            shape_score = 15
        else:
            shape_score = 8
        score = frequency_score + spread_score + non_start_score + shape_score

        if len(text) <= 2:
            min_score = 35
        elif word_count >= 2:
            min_score = 25
        else:
            min_score = 30
        if score < min_score:
            return None

        contexts = _context_snippets(full_text, text, _MAX_CONTEXTS)
        return ExtractionCandidate(
            text=text,
            suggested_type=self._suggest_type(text, contexts),
            confidence=_confidence_bucket(score),
            score=round(score, 2),
            occurrences=tally.total,
            chapter_spread=len(tally.chapters),
            sample_contexts=contexts[:_KEPT_CONTEXTS],
        )

    def _suggest_type(self, text: str, contexts: list[str]) -> EntityType:
        if _ACRONYM.match(text):
            return "organization"
        hit = self.gazetteer.lookup(text)
        if hit is not None:
            return hit.type
        won = score_context(text, contexts, self.gazetteer).winner()
        return won[0] if won else "character"

    def _deduplicate(self, candidates: list[ExtractionCandidate]) -> list[ExtractionCandidate]:
        """Fold single words into the multi-word names that contain them."""
        multi = sorted(
            (c for c in candidates if len(c.text.split()) > 1),
            key=lambda c: len(c.text.split()),
            reverse=True,
        )
        consumed: set[str] = set()
        for cand in multi:
            for word in cand.text.split():
                if not self.gazetteer.is_noise(word):
                    consumed.add(word)
                    if word not in cand.related_candidates:
                        cand.related_candidates.append(word)

        kept = list(multi)
        for cand in candidates:
            if len(cand.text.split()) != 1:
                continue
            if cand.text not in consumed:
                kept.append(cand)
                continue
            longer = next((k for k in multi if cand.text in k.text.split()), None)
            if longer is not None:
                longer.occurrences = max(longer.occurrences, cand.occurrences)
                longer.chapter_spread = max(longer.chapter_spread, cand.chapter_spread)
        return kept
