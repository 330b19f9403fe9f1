"""Remote (LLM) classification of entities the local layers were unsure about.

``classify_with_llm`` sends batches and raises when nothing could be
classified. ``run_llm_enhancement`` is the pipeline-facing wrapper: it never
raises for provider problems and instead returns an explicit
``LLMBatchResult | LLMFailure``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Protocol

from novelmap.extraction.classification_prompts import build_classification_prompt
from novelmap.infra import config
from novelmap.infra.llm_client import (
    LLMAuthError,
    LLMError,
    LLMParseError,
    LLMTimeoutError,
    LlmUsage,
)
from novelmap.infra.progress import ProgressChannel
from novelmap.models.entity import ENTITY_TYPES
from novelmap.models.extraction import (
    Classified,
    ClassifiedEntity,
    Filtered,
    LLMBatchResult,
    LLMFailure,
    LLMVerdict,
)
from novelmap.services.cost_service import compute_cost

logger = logging.getLogger(__name__)


class SupportsGenerate(Protocol):
    model: str

    async def generate(
        self,
        system: str,
        prompt: str,
        format: dict | None = None,  # noqa: A002
        temperature: float = 0.1,
        max_tokens: int = 4096,
        timeout: float = 120,
    ) -> tuple[str | dict | list, LlmUsage]: ...


def _clamp_confidence(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(min(100, max(0, round(value))))


def _parse_flag(value) -> bool:
    """Only a JSON true (or the string "true") marks noise."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _parse_verdicts(payload, batch: list[ClassifiedEntity]) -> list[LLMVerdict]:
    """Turn the model's JSON into verdicts for names that are in the batch.

    Names the model skipped get no verdict; unknown types become "no type".
    """
    if isinstance(payload, dict):
        payload = payload.get("results") or payload.get("entities")
    if not isinstance(payload, list):
        raise LLMParseError("Expected a JSON array of classifications")

    wanted = {e.name: e.name for e in batch}
    wanted_lower = {e.name.lower(): e.name for e in batch}
    verdicts: dict[str, LLMVerdict] = {}
    for item in payload:
        if not isinstance(item, dict):
            continue
        raw_name = str(item.get("name", "")).strip()
        name = wanted.get(raw_name) or wanted_lower.get(raw_name.lower())
        if name is None or name in verdicts:
            continue
        raw_type = item.get("type")
        verdicts[name] = LLMVerdict(
            name=name,
            type=raw_type if raw_type in ENTITY_TYPES else None,
            confidence=_clamp_confidence(item.get("confidence")),
            is_noise=_parse_flag(item.get("isNoise", item.get("is_noise"))),
            reasoning=str(item.get("reasoning") or ""),
        )
    return list(verdicts.values())


async def classify_with_llm(
    entities: list[ClassifiedEntity],
    client: SupportsGenerate,
    book_title: str = "Untitled",
    genre: str = "fiction",
    batch_size: int | None = None,
    progress: ProgressChannel | None = None,
    timeout: float | None = None,
) -> LLMBatchResult:
    """Classify entities in batches. A failed batch is skipped; all failing raises."""
    size = max(1, batch_size or config.LLM_BATCH_SIZE)
    per_request_timeout = timeout or config.LLM_TIMEOUT
    total = len(entities)
    batches = [entities[i:i + size] for i in range(0, total, size)]

    verdicts: list[LLMVerdict] = []
    input_tokens = output_tokens = 0
    failed = 0
    last_error: LLMError | None = None

    for index, batch in enumerate(batches):
        system, prompt = build_classification_prompt(batch, book_title, genre)
        try:
            payload, usage = await client.generate(
                system=system,
                prompt=prompt,
                format={"type": "array"},
                max_tokens=config.LLM_MAX_TOKENS,
                timeout=per_request_timeout,
            )
            batch_verdicts = _parse_verdicts(payload, batch)
        except LLMError as exc:
            failed += 1
            last_error = exc
            logger.warning(
                "Remote classification batch %d/%d failed: %s",
                index + 1, len(batches), exc,
            )
        else:
            verdicts.extend(batch_verdicts)
            input_tokens += usage.prompt_tokens
            output_tokens += usage.completion_tokens

        if progress is not None:
            processed = min((index + 1) * size, total)
            await progress.emit("llm", f"AI classifying: {processed}/{total} entities")

    if batches and failed == len(batches) and last_error is not None:
        raise last_error

    return LLMBatchResult(
        verdicts=verdicts,
        cost=compute_cost(input_tokens, output_tokens, getattr(client, "model", None)),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        failed_batches=failed,
    )


def failure_kind(exc: BaseException) -> str:
    if isinstance(exc, (LLMTimeoutError, asyncio.TimeoutError)):
        return "timeout"
    if isinstance(exc, LLMAuthError):
        return "auth"
    if isinstance(exc, LLMParseError):
        return "malformed"
    if isinstance(exc, LLMError):
        return "network"
    return "unknown"


async def run_llm_enhancement(
    entities: list[ClassifiedEntity],
    client: SupportsGenerate,
    book_title: str = "Untitled",
    genre: str = "fiction",
    batch_size: int | None = None,
    progress: ProgressChannel | None = None,
    overall_timeout: float | None = None,
) -> LLMBatchResult | LLMFailure:
    """Run remote classification under an overall time bound.

    Cancellation of the caller propagates; every other failure becomes an
    ``LLMFailure``.
    """
    try:
        return await asyncio.wait_for(
            classify_with_llm(
                entities, client, book_title, genre,
                batch_size=batch_size, progress=progress,
            ),
            timeout=overall_timeout,
        )
    except Exception as exc:
        kind = failure_kind(exc)
        logger.warning("Remote classification failed (%s)", kind, exc_info=True)
        return LLMFailure(kind=kind, message=str(exc) or type(exc).__name__)


def merge_llm_results(
    entities: list[ClassifiedEntity],
    verdicts: list[LLMVerdict],
) -> tuple[list[ClassifiedEntity], int]:
    """Apply verdicts to matching entities.

    Noise verdicts filter the entity; others overwrite the type and/or
    confidence they state and mark the source as "llm". Returns the merged
    list and the number of entities enhanced (non-noise verdicts applied).
    """
    by_name = {v.name: v for v in verdicts}
    merged: list[ClassifiedEntity] = []
    enhanced = 0
    for entity in entities:
        verdict = by_name.get(entity.name)
        if verdict is None or entity.filtered:
            merged.append(entity)
            continue
        if verdict.is_noise:
            merged.append(
                entity.with_verdict(Filtered(reason="llm_noise", detail=verdict.reasoning or None))
            )
            continue
        merged.append(
            entity.with_verdict(
                Classified(
                    type=verdict.type or entity.type,
                    confidence=(
                        verdict.confidence if verdict.confidence is not None else entity.confidence
                    ),
                    source="llm",
                )
            )
        )
        enhanced += 1
    return merged, enhanced
