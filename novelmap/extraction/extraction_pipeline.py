"""Extraction pipeline: scanner candidates -> classified entities.

Phase 1 (sync): pre-filter noise, then reconcile the scanner's own type
guess with the gazetteer. Phase 2 (optional, async): send the entities still
below the review threshold to the remote classifier and merge its verdicts.
A failed Phase 2 leaves Phase 1 results untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from novelmap.extraction.entity_classifier import (
    get_entities_needing_review,
    get_valid_entities,
    prefilter,
)
from novelmap.extraction.gazetteer import Gazetteer, get_gazetteer
from novelmap.extraction.llm_classifier import (
    SupportsGenerate,
    failure_kind,
    merge_llm_results,
    run_llm_enhancement,
)
from novelmap.infra import config
from novelmap.infra.progress import ProgressChannel
from novelmap.models.entity import ENTITY_TYPES
from novelmap.models.extraction import (
    Classified,
    ClassifiedEntity,
    ExtractionCandidate,
    Filtered,
    LLMBatchResult,
    LLMFailure,
    PipelineResult,
    PipelineStats,
    RawCandidate,
    ScannerResult,
)

logger = logging.getLogger(__name__)

_SCANNER_CONFIDENCE = {"high": 80, "medium": 50, "low": 30}


@dataclass
class LLMClassifierConfig:
    """Explicit provider settings; unset fields fall back to infra.config."""

    api_key: str
    model: str | None = None
    max_batch_size: int | None = None
    base_url: str | None = None


@dataclass
class PipelineOptions:
    enable_llm: bool = False
    llm_client: SupportsGenerate | None = None
    llm_config: LLMClassifierConfig | None = None
    book_title: str = "Untitled"
    genre: str | None = None  # None: "fiction" in the prompt
    confidence_threshold: int = config.REVIEW_CONFIDENCE_THRESHOLD
    llm_timeout: float | None = None
    progress: ProgressChannel | None = None


def _to_raw(candidate: ExtractionCandidate, total_chapters: int) -> RawCandidate:
    return RawCandidate(
        name=candidate.text,
        type_guess=candidate.suggested_type,
        confidence_guess=candidate.confidence,
        score=candidate.score,
        frequency=candidate.occurrences,
        chapter_spread=candidate.chapter_spread,
        total_chapters=total_chapters,
        contexts=candidate.sample_contexts,
        related_names=candidate.related_candidates,
    )


def reconcile_candidate(raw: RawCandidate, gazetteer: Gazetteer) -> ClassifiedEntity:
    """Phase 1 verdict for one scanner candidate."""
    base = {
        "name": raw.name,
        "score": raw.score,
        "frequency": raw.frequency,
        "chapter_spread": raw.chapter_spread,
        "total_chapters": raw.total_chapters,
        "contexts": list(raw.contexts),
        "related_names": list(raw.related_names),
    }

    reason = prefilter(raw.name, gazetteer)
    if reason is not None:
        return ClassifiedEntity(**base, verdict=Filtered(reason=reason))

    scanner_type = raw.type_guess if raw.type_guess in ENTITY_TYPES else "character"
    scanner_confidence = _SCANNER_CONFIDENCE.get(raw.confidence_guess, 30)

    hit = gazetteer.lookup(raw.name)
    if hit is not None and hit.confidence > scanner_confidence:
        verdict = Classified(type=hit.type, confidence=hit.confidence, source="gazetteer")
    else:
        verdict = Classified(type=scanner_type, confidence=scanner_confidence, source="context")
    return ClassifiedEntity(**base, verdict=verdict)


def _resolve_client(options: PipelineOptions) -> SupportsGenerate:
    if options.llm_client is not None:
        return options.llm_client
    if options.llm_config is not None:
        from novelmap.infra.anthropic_client import AnthropicClient

        cfg = options.llm_config
        return AnthropicClient(
            base_url=cfg.base_url or config.LLM_BASE_URL,
            api_key=cfg.api_key,
            model=cfg.model or config.LLM_MODEL,
        )
    from novelmap.infra.llm_client import get_llm_client

    return get_llm_client()


async def _enhance(
    review: list[ClassifiedEntity], options: PipelineOptions
) -> LLMBatchResult | LLMFailure:
    try:
        client = _resolve_client(options)
        batch_size = options.llm_config.max_batch_size if options.llm_config else None
        return await run_llm_enhancement(
            review,
            client,
            book_title=options.book_title,
            genre=options.genre or "fiction",
            batch_size=batch_size,
            progress=options.progress,
            overall_timeout=options.llm_timeout,
        )
    except Exception as exc:
        logger.warning("Remote classification could not start", exc_info=True)
        return LLMFailure(kind=failure_kind(exc), message=str(exc) or type(exc).__name__)


async def run_pipeline(
    scanner_result: ScannerResult,
    total_chapters: int,
    options: PipelineOptions | None = None,
    gazetteer: Gazetteer | None = None,
) -> PipelineResult:
    opts = options or PipelineOptions()
    gaz = gazetteer or get_gazetteer()
    progress = opts.progress

    async def _emit(stage: str, detail: str) -> None:
        if progress is not None:
            await progress.emit(stage, detail)

    candidates = scanner_result.candidates
    await _emit("enhance", f"Classifying {len(candidates)} candidates...")

    existing = {name.lower() for name in scanner_result.existing_entities}
    working = [
        reconcile_candidate(_to_raw(c, total_chapters), gaz)
        for c in candidates
        if c.text.lower() not in existing
    ]

    review = get_entities_needing_review(working, opts.confidence_threshold)
    llm_enhanced = 0
    llm_cost: float | None = None

    if opts.enable_llm and review:
        await _emit("llm", f"Enhancing {len(review)} entities with AI...")
        outcome = await _enhance(review, opts)
        if isinstance(outcome, LLMFailure):
            logger.warning(
                "Remote enhancement degraded to base results: %s (%s)",
                outcome.kind, outcome.message,
            )
            await _emit("llm-error", "AI enhancement failed, using base results")
        else:
            working, llm_enhanced = merge_llm_results(working, outcome.verdicts)
            llm_cost = outcome.cost
            await _emit("llm-complete", f"AI enhanced {llm_enhanced} entities (${outcome.cost:.4f})")

    valid = get_valid_entities(working)
    filtered = [e for e in working if e.filtered]
    needs_review = get_entities_needing_review(working, opts.confidence_threshold)

    stats = PipelineStats(
        total_candidates=len(candidates),
        filtered_as_noise=len(filtered),
        auto_classified=len(valid) - len(needs_review),
        needs_review=len(needs_review),
        llm_enhanced=llm_enhanced,
        llm_cost=llm_cost,
    )
    logger.info(
        "Pipeline finished: %d candidates, %d valid, %d filtered, %d need review, %d enhanced",
        stats.total_candidates, len(valid), stats.filtered_as_noise,
        stats.needs_review, stats.llm_enhanced,
    )
    return PipelineResult(
        entities=valid,
        filtered=filtered,
        needs_review=needs_review,
        stats=stats,
    )


def _confidence_bucket(confidence: int) -> str:
    if confidence >= 60:
        return "high"
    if confidence >= 35:
        return "medium"
    return "low"


def to_extraction_result(
    result: PipelineResult, existing_entities: list[str] | None = None
) -> ScannerResult:
    """Present pipeline output in the scanner's candidate shape."""
    return ScannerResult(
        candidates=[
            ExtractionCandidate(
                text=e.name,
                suggested_type=e.type,
                confidence=_confidence_bucket(e.confidence),
                score=e.score,
                occurrences=e.frequency,
                chapter_spread=e.chapter_spread,
                sample_contexts=e.contexts,
                related_candidates=e.related_names,
            )
            for e in result.entities
        ],
        existing_entities=list(existing_entities or []),
    )
