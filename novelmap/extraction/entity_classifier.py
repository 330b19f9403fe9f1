"""Layered entity classifier.

Each candidate goes through a fixed chain and the first layer that fires
wins:

    pre-filters -> gazetteer -> context signals -> name shape -> default

Everything here is a pure value-to-value transform; the only shared state is
the read-only gazetteer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from novelmap.extraction.gazetteer import Gazetteer, get_gazetteer
from novelmap.models.entity import EntityType
from novelmap.models.extraction import (
    Classified,
    ClassifiedEntity,
    Filtered,
    RawCandidate,
)

_ACRONYM = re.compile(r"^[A-Z]{2,6}$")
_CAPITALIZED = re.compile(r"^[A-Z]")

_TITLE_WEIGHT = 5
_SIGNAL_WEIGHT = 3
_PREPOSITION_WEIGHT = 3
_ARTICLE_WEIGHT = 2
_ORG_NOUN_WEIGHT = 4
_MULTI_WORD_BIAS = 8

_CONTEXT_BASE = 40
_CONTEXT_CAP = 85
_DEFAULT_CONFIDENCE = 30


@dataclass(frozen=True)
class ContextScores:
    character: int = 0
    location: int = 0
    organization: int = 0

    def winner(self) -> tuple[EntityType, int] | None:
        """Winning type and its raw score; None when nothing fired.

        Character wins ties against both; location needs to beat character
        and at least match organization; organization must beat both.
        """
        c, loc, org = self.character, self.location, self.organization
        top = max(c, loc, org)
        if top == 0:
            return None
        if c >= loc and c >= org:
            return "character", top
        if loc > c and loc >= org:
            return "location", top
        return "organization", top


def prefilter(name: str, gazetteer: Gazetteer) -> str | None:
    """Return the filter reason for a name that can never be an entity."""
    if gazetteer.is_noise(name):
        return "noise_word"
    if gazetteer.is_street_address(name):
        return "street_address"
    if _ACRONYM.match(name) and gazetteer.is_caps_noise(name):
        return "caps_noise"
    return None


def _has_lowercase_article(name_lower: str, context: str) -> bool:
    # Only a mid-sentence "the" counts; a sentence-initial "The" says nothing about organizations
    lower = context.lower()
    needle = f"the {name_lower}"
    start = lower.find(needle)
    while start != -1:
        if context[start] == "t":
            return True
        start = lower.find(needle, start + 1)
    return False


def score_context(name: str, contexts: list[str], gazetteer: Gazetteer) -> ContextScores:
    """Accumulate character / location / organization signal weights over all contexts."""
    if not contexts:
        return ContextScores()

    name_lower = name.lower()
    character = location = organization = 0

    for ctx in contexts:
        lower = ctx.lower()

        for signal in gazetteer.character_signals:
            if f"{name_lower} {signal}" in lower:
                character += _SIGNAL_WEIGHT
            if f"{signal} {name_lower}" in lower:
                character += _SIGNAL_WEIGHT

        for title in gazetteer.character_titles:
            if f"{title} {name_lower}" in lower:
                character += _TITLE_WEIGHT
            if f"{title}. {name_lower}" in lower:
                character += _TITLE_WEIGHT

        for prep in gazetteer.location_prepositions:
            if f"{prep} {name_lower}" in lower:
                location += _PREPOSITION_WEIGHT

        if _has_lowercase_article(name_lower, ctx):
            organization += _ARTICLE_WEIGHT
        for noun in gazetteer.org_nouns:
            if f"{name_lower} {noun}" in lower:
                organization += _ORG_NOUN_WEIGHT

    # Most multi-token proper names are people
    if 2 <= len(name.split()) <= 3:
        character += _MULTI_WORD_BIAS

    return ContextScores(character, location, organization)


def _classify_by_context(
    name: str, contexts: list[str], gazetteer: Gazetteer
) -> tuple[EntityType, int] | None:
    won = score_context(name, contexts, gazetteer).winner()
    if won is None:
        return None
    entity_type, score = won
    return entity_type, min(_CONTEXT_CAP, _CONTEXT_BASE + 2 * score)


def _classify_by_shape(
    name: str, frequency: int, chapter_spread: int
) -> tuple[EntityType, int] | None:
    if _ACRONYM.match(name):
        return "organization", 60
    words = name.split()
    if 2 <= len(words) <= 3 and all(_CAPITALIZED.match(w) for w in words):
        return "character", 50
    if len(words) == 1 and frequency >= 5 and chapter_spread >= 3:
        return "character", 35
    return None


def _base(candidate: RawCandidate) -> dict:
    return {
        "name": candidate.name,
        "score": candidate.score,
        "frequency": candidate.frequency,
        "chapter_spread": candidate.chapter_spread,
        "total_chapters": candidate.total_chapters,
        "contexts": list(candidate.contexts),
        "related_names": list(candidate.related_names),
    }


def classify(candidate: RawCandidate, gazetteer: Gazetteer | None = None) -> ClassifiedEntity:
    """Resolve one candidate to exactly one verdict."""
    gaz = gazetteer or get_gazetteer()
    base = _base(candidate)

    reason = prefilter(candidate.name, gaz)
    if reason is not None:
        return ClassifiedEntity(**base, verdict=Filtered(reason=reason))

    hit = gaz.lookup(candidate.name)
    if hit is not None:
        return ClassifiedEntity(
            **base,
            verdict=Classified(type=hit.type, confidence=hit.confidence, source="gazetteer"),
        )

    by_context = _classify_by_context(candidate.name, candidate.contexts, gaz)
    if by_context is not None:
        return ClassifiedEntity(
            **base,
            verdict=Classified(type=by_context[0], confidence=by_context[1], source="context"),
        )

    by_shape = _classify_by_shape(candidate.name, candidate.frequency, candidate.chapter_spread)
    if by_shape is not None:
        return ClassifiedEntity(
            **base,
            verdict=Classified(type=by_shape[0], confidence=by_shape[1], source="shape"),
        )

    return ClassifiedEntity(
        **base,
        verdict=Classified(type="character", confidence=_DEFAULT_CONFIDENCE, source="default"),
    )


def classify_entities(
    candidates: list[RawCandidate], gazetteer: Gazetteer | None = None
) -> list[ClassifiedEntity]:
    gaz = gazetteer or get_gazetteer()
    return [classify(c, gaz) for c in candidates]


def get_valid_entities(entities: list[ClassifiedEntity]) -> list[ClassifiedEntity]:
    return [e for e in entities if not e.filtered]


def get_entities_needing_review(
    entities: list[ClassifiedEntity], threshold: int = 50
) -> list[ClassifiedEntity]:
    return [e for e in entities if not e.filtered and e.confidence < threshold]
