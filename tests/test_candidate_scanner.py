"""Tests for the statistical candidate scanner."""

import pytest

from novelmap.db import entity_store
from novelmap.extraction.candidate_scanner import EntityCandidateScanner
from novelmap.models.entity import EntityCreate

_CHAPTERS = [
    "Detective Ramsey walked into the precinct. Ramsey said nothing to Wu about Detroit. "
    "The MSS had agents in Chicago.",
    "Wu nodded at Ramsey. Later they flew to Detroit, then on to Chicago. The MSS was watching.",
]


def _by_text(result):
    return {c.text: c for c in result.candidates}


def test_scan_finds_names_places_and_acronyms():
    result = EntityCandidateScanner().scan_chapters(_CHAPTERS, [])
    found = _by_text(result)

    assert {"Ramsey", "Wu", "Chicago", "Detroit", "MSS"} <= set(found)
    assert found["Chicago"].suggested_type == "location"
    assert found["Detroit"].suggested_type == "location"
    assert found["MSS"].suggested_type == "organization"
    assert found["Ramsey"].suggested_type == "character"
    assert found["Ramsey"].occurrences == 3
    assert found["Chicago"].chapter_spread == 2


def test_scan_drops_noise_and_single_mentions():
    found = _by_text(EntityCandidateScanner().scan_chapters(_CHAPTERS, []))
    assert "Detective" not in found
    assert "The" not in found
    # Appears once
    assert "Later" not in found


def test_scores_and_confidence_buckets():
    found = _by_text(EntityCandidateScanner().scan_chapters(_CHAPTERS, []))
    # 2 mentions (6) + both chapters (25) + never a sentence start (25) + acronym (15)
    assert found["MSS"].score == 71
    assert found["MSS"].confidence == "high"
    assert all(c.score >= 25 for c in found.values())


def test_existing_entities_are_excluded():
    result = EntityCandidateScanner().scan_chapters(_CHAPTERS, ["chicago"])
    assert "Chicago" not in _by_text(result)
    assert result.existing_entities == ["chicago"]


def test_multi_word_names_absorb_their_parts():
    chapters = [
        "Aria Stormwind arrived. Later, Aria Stormwind left.",
        "Everyone feared Aria Stormwind. Aria smiled.",
    ]
    found = _by_text(EntityCandidateScanner().scan_chapters(chapters, []))

    assert "Aria Stormwind" in found
    assert "Aria" not in found
    assert "Stormwind" not in found
    aria = found["Aria Stormwind"]
    assert aria.related_candidates == ["Aria", "Stormwind"]
    # The bare first name was seen more often than the full name
    assert aria.occurrences == 4


def test_sample_contexts_are_trimmed_snippets():
    found = _by_text(EntityCandidateScanner().scan_chapters(_CHAPTERS, []))
    contexts = found["Ramsey"].sample_contexts
    assert 1 <= len(contexts) <= 3
    assert all("Ramsey" in c for c in contexts)
    assert any(c.startswith("…") or c.endswith("…") for c in contexts)


def test_empty_input():
    result = EntityCandidateScanner().scan_chapters([], ["Kael"])
    assert result.candidates == []
    assert result.existing_entities == ["Kael"]


@pytest.mark.asyncio
async def test_scan_reads_project_chapters(project, add_manuscript):
    await add_manuscript(project.id, "Book One", *_CHAPTERS)
    await entity_store.create_entity(project.id, EntityCreate(type="character", name="Wu"))

    result = await EntityCandidateScanner().scan(project.id)

    found = _by_text(result)
    assert "Ramsey" in found
    assert "Wu" not in found
    assert result.existing_entities == ["Wu"]


@pytest.mark.asyncio
async def test_scan_with_no_chapters(project):
    result = await EntityCandidateScanner().scan(project.id)
    assert result.candidates == []
