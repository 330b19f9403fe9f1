"""Tests for the two-phase extraction pipeline."""

import asyncio

import pytest

from novelmap.extraction.extraction_pipeline import (
    PipelineOptions,
    reconcile_candidate,
    run_pipeline,
    to_extraction_result,
)
from novelmap.extraction.gazetteer import get_gazetteer
from novelmap.infra.llm_client import LLMError, LlmUsage
from novelmap.infra.progress import ProgressChannel
from novelmap.models.extraction import (
    Classified,
    ExtractionCandidate,
    Filtered,
    RawCandidate,
    ScannerResult,
)


class FakeClient:
    """Stands in for AnthropicClient; returns canned verdicts or raises."""

    model = "claude-haiku-4-5-20251001"

    def __init__(self, payload=None, error=None, delay=0.0):
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls = 0

    async def generate(self, system, prompt, format=None, temperature=0.1,
                       max_tokens=4096, timeout=120):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload, LlmUsage(prompt_tokens=1000, completion_tokens=200, total_tokens=1200)


def _scanner_result():
    return ScannerResult(
        candidates=[
            ExtractionCandidate(text="Chicago", suggested_type="location", confidence="high",
                                score=71, occurrences=2, chapter_spread=2),
            ExtractionCandidate(text="Wu", suggested_type="character", confidence="medium",
                                score=51.5, occurrences=2, chapter_spread=2),
            ExtractionCandidate(text="Grendel", suggested_type="character", confidence="low",
                                score=30, occurrences=2, chapter_spread=1,
                                sample_contexts=["…the Grendel came at night…"]),
            ExtractionCandidate(text="Yesterday", confidence="low", score=28, occurrences=3),
            ExtractionCandidate(text="Mill Road", suggested_type="location", confidence="medium",
                                score=40, occurrences=2),
        ],
        existing_entities=[],
    )


def _collect(channel):
    events = []
    channel.subscribe(events.append)
    return events


# ── Phase 1 ──────────────────────────────────────────


def test_reconcile_prefers_higher_gazetteer_confidence():
    gaz = get_gazetteer()
    chicago = reconcile_candidate(
        RawCandidate(name="Chicago", type_guess="location", confidence_guess="high"), gaz,
    )
    assert chicago.verdict == Classified(type="location", confidence=90, source="gazetteer")

    # Scanner guess (80) beats the gazetteer's 75 for a region
    pacific = reconcile_candidate(
        RawCandidate(name="Pacific", type_guess="location", confidence_guess="high"), gaz,
    )
    assert pacific.verdict == Classified(type="location", confidence=80, source="context")


def test_reconcile_filters_noise_first():
    result = reconcile_candidate(RawCandidate(name="Yesterday"), get_gazetteer())
    assert result.verdict == Filtered(reason="noise_word")


@pytest.mark.asyncio
async def test_pipeline_without_remote_enhancement():
    result = await run_pipeline(_scanner_result(), total_chapters=2)

    assert [e.name for e in result.entities] == ["Chicago", "Wu", "Grendel"]
    assert {e.name for e in result.filtered} == {"Yesterday", "Mill Road"}
    assert [e.name for e in result.needs_review] == ["Grendel"]
    assert result.stats.total_candidates == 5
    assert result.stats.filtered_as_noise == 2
    assert result.stats.auto_classified == 2
    assert result.stats.needs_review == 1
    assert result.stats.llm_enhanced == 0
    assert result.stats.llm_cost is None
    assert all(e.total_chapters == 2 for e in result.entities)


@pytest.mark.asyncio
async def test_existing_entities_are_skipped():
    scanned = _scanner_result()
    scanned.existing_entities = ["wu"]
    result = await run_pipeline(scanned, total_chapters=2)
    assert "Wu" not in {e.name for e in result.entities}


# ── Phase 2 ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_remote_enhancement_updates_low_confidence_entities():
    client = FakeClient(payload=[
        {"name": "Grendel", "type": "character", "isNoise": False,
         "confidence": 88, "reasoning": "monster with agency"},
    ])
    progress = ProgressChannel()
    events = _collect(progress)

    result = await run_pipeline(
        _scanner_result(), 2,
        PipelineOptions(enable_llm=True, llm_client=client, progress=progress),
    )

    grendel = next(e for e in result.entities if e.name == "Grendel")
    assert grendel.verdict == Classified(type="character", confidence=88, source="llm")
    assert result.needs_review == []
    assert result.stats.llm_enhanced == 1
    # 1000 input tokens at $1/M + 200 output tokens at $5/M
    assert result.stats.llm_cost == pytest.approx(0.002)
    assert client.calls == 1
    assert [e.stage for e in events] == ["enhance", "llm", "llm", "llm-complete"]
    assert events[-1].detail == "AI enhanced 1 entities ($0.0020)"


@pytest.mark.asyncio
async def test_remote_noise_verdict_moves_entity_to_filtered():
    client = FakeClient(payload=[
        {"name": "Grendel", "isNoise": True, "reasoning": "common noun here"},
    ])
    result = await run_pipeline(
        _scanner_result(), 2, PipelineOptions(enable_llm=True, llm_client=client),
    )

    grendel = next(e for e in result.filtered if e.name == "Grendel")
    assert grendel.verdict == Filtered(reason="llm_noise", detail="common noun here")
    assert "Grendel" not in {e.name for e in result.entities}
    assert result.stats.filtered_as_noise == 3
    assert result.stats.llm_enhanced == 0


@pytest.mark.asyncio
async def test_remote_failure_degrades_to_phase_one_results():
    baseline = await run_pipeline(_scanner_result(), 2)

    progress = ProgressChannel()
    events = _collect(progress)
    client = FakeClient(error=LLMError("connection reset"))
    result = await run_pipeline(
        _scanner_result(), 2,
        PipelineOptions(enable_llm=True, llm_client=client, progress=progress),
    )

    assert result.entities == baseline.entities
    assert result.needs_review == baseline.needs_review
    assert result.stats.llm_enhanced == 0
    assert result.stats.llm_cost is None
    assert events[-1].stage == "llm-error"
    assert events[-1].detail == "AI enhancement failed, using base results"


@pytest.mark.asyncio
async def test_remote_timeout_degrades_to_phase_one_results():
    client = FakeClient(payload=[], delay=5)
    result = await run_pipeline(
        _scanner_result(), 2,
        PipelineOptions(enable_llm=True, llm_client=client, llm_timeout=0.05),
    )
    assert result.stats.llm_enhanced == 0
    assert result.stats.llm_cost is None
    assert [e.name for e in result.needs_review] == ["Grendel"]


@pytest.mark.asyncio
async def test_missing_credentials_degrade_instead_of_raising(monkeypatch):
    from novelmap.infra import config, llm_client

    monkeypatch.setattr(config, "ANTHROPIC_API_KEY", "")
    monkeypatch.setattr(llm_client, "_client", None)

    result = await run_pipeline(_scanner_result(), 2, PipelineOptions(enable_llm=True))
    assert result.stats.llm_enhanced == 0
    assert result.stats.llm_cost is None


@pytest.mark.asyncio
async def test_nothing_to_review_skips_remote_call():
    client = FakeClient(payload=[])
    scanned = _scanner_result()
    scanned.candidates = scanned.candidates[:2]
    result = await run_pipeline(
        scanned, 2, PipelineOptions(enable_llm=True, llm_client=client),
    )
    assert client.calls == 0
    assert result.stats.llm_cost is None


def test_to_extraction_result_buckets_confidence():
    from novelmap.models.extraction import PipelineResult

    gaz = get_gazetteer()
    entities = [
        reconcile_candidate(RawCandidate(name="Chicago", confidence_guess="high"), gaz),
        reconcile_candidate(RawCandidate(name="Wu", confidence_guess="medium"), gaz),
        reconcile_candidate(RawCandidate(name="Grendel", confidence_guess="low"), gaz),
    ]
    shaped = to_extraction_result(PipelineResult(entities=entities), ["Kael"])

    assert [c.confidence for c in shaped.candidates] == ["high", "medium", "low"]
    assert shaped.existing_entities == ["Kael"]
