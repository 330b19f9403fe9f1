"""Tests for the layered entity classifier."""

from novelmap.extraction.entity_classifier import (
    ContextScores,
    classify,
    classify_entities,
    get_entities_needing_review,
    get_valid_entities,
    score_context,
)
from novelmap.extraction.gazetteer import Gazetteer, get_gazetteer
from novelmap.models.extraction import Classified, Filtered, RawCandidate


def _raw(name, contexts=(), frequency=2, spread=1):
    return RawCandidate(
        name=name, contexts=list(contexts), frequency=frequency, chapter_spread=spread,
    )


# ── Pre-filters ──────────────────────────────────────


def test_noise_word_is_filtered():
    result = classify(_raw("Yesterday"))
    assert result.filtered
    assert result.verdict == Filtered(reason="noise_word")


def test_street_address_is_filtered():
    assert classify(_raw("Maple Street")).filter_reason == "street_address"


def test_shouted_word_is_filtered_as_caps_noise():
    assert classify(_raw("HELP")).filter_reason == "caps_noise"


# ── Gazetteer ────────────────────────────────────────


def test_gazetteer_hit_uses_configured_confidence_exactly():
    gaz = get_gazetteer()
    for name in ("Chicago", "Detroit", "Washington", "Hong Kong", "CIA", "Pentagon"):
        result = classify(_raw(name, ["He said Chicago was cold"]), gaz)
        hit = gaz.lookup(name)
        assert result.classified_by == "gazetteer"
        assert result.confidence == hit.confidence
        assert result.type == hit.type


def test_gazetteer_beats_character_context():
    result = classify(_raw("Detroit", ["Detroit said nothing", "asked Detroit"]))
    assert result.type == "location"
    assert result.classified_by == "gazetteer"


# ── Context signals ──────────────────────────────────


def test_character_signals_and_titles():
    scores = score_context(
        "Ramsey",
        ["Ramsey said the car was ready.", "Detective Ramsey nodded."],
        get_gazetteer(),
    )
    # "ramsey said" (3) + "detective ramsey" (5) + "ramsey nodded" (3)
    assert scores.character == 11
    assert scores.winner() == ("character", 11)


def test_context_confidence_formula_and_cap():
    result = classify(_raw("Vessa", ["They flew to Vessa at dawn."]))
    assert result.verdict == Classified(type="location", confidence=46, source="context")

    busy = ["Vessa said it. Vessa nodded. Vessa smiled. Vessa laughed. Vessa sighed."] * 5
    assert classify(_raw("Vessa", busy)).confidence == 85


def test_lowercase_article_counts_for_organization():
    scores = score_context("Syndicate", ["He had crossed the Syndicate twice."], Gazetteer())
    assert scores.organization == 2


def test_sentence_initial_article_is_not_an_organization_signal():
    scores = score_context("MSS", ["The MSS tracks everything"], Gazetteer())
    assert scores == ContextScores()


def test_no_contexts_scores_zero():
    assert score_context("Anyone Here", [], get_gazetteer()) == ContextScores()


def test_tie_rules():
    assert ContextScores(3, 3, 3).winner() == ("character", 3)
    assert ContextScores(0, 4, 4).winner() == ("location", 4)
    assert ContextScores(2, 2, 0).winner() == ("character", 2)
    assert ContextScores(1, 2, 3).winner() == ("organization", 3)
    assert ContextScores().winner() is None


# ── Shape and default ────────────────────────────────


def test_acronym_without_gazetteer_entry_falls_to_shape():
    result = classify(_raw("MSS", ["The MSS tracks everything"]), Gazetteer())
    assert result.verdict == Classified(type="organization", confidence=60, source="shape")


def test_acronym_with_gazetteer_entry_uses_gazetteer():
    result = classify(_raw("MSS", ["The MSS tracks everything"]))
    assert result.classified_by == "gazetteer"
    assert result.confidence == 90


def test_frequent_single_word_is_a_character_by_shape():
    result = classify(_raw("Quill", frequency=6, spread=3), Gazetteer())
    assert result.verdict == Classified(type="character", confidence=35, source="shape")


def test_default_layer():
    result = classify(_raw("Quill", frequency=2, spread=1), Gazetteer())
    assert result.verdict == Classified(type="character", confidence=30, source="default")


# ── Partitions ───────────────────────────────────────


def test_filtering_is_monotonic_and_confidences_bounded():
    entities = classify_entities([
        _raw("Yesterday"),
        _raw("Chicago"),
        _raw("Quill"),
        _raw("Elm Street"),
        _raw("Vessa", ["They flew to Vessa at dawn."]),
    ])
    valid = get_valid_entities(entities)
    review = get_entities_needing_review(entities)

    assert not any(e.filtered for e in valid)
    assert not any(e.filtered for e in review)
    assert {e.name for e in valid} == {"Chicago", "Quill", "Vessa"}
    assert {e.name for e in review} == {"Quill", "Vessa"}
    assert all(0 <= e.confidence <= 100 for e in valid)
