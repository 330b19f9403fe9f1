"""Extraction-side models: scanner output, classification verdicts, pipeline results."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, computed_field

from novelmap.models.entity import EntityType

ConfidenceBucket = Literal["high", "medium", "low"]
SourceLayer = Literal["gazetteer", "context", "shape", "default", "llm"]


class ExtractionCandidate(BaseModel):
    """One candidate produced by the statistical scanner."""

    text: str
    suggested_type: EntityType = "character"
    confidence: ConfidenceBucket = "low"
    score: float = 0
    occurrences: int = 0
    chapter_spread: int = 0
    sample_contexts: list[str] = []
    related_candidates: list[str] = []


class ScannerResult(BaseModel):
    candidates: list[ExtractionCandidate] = []
    existing_entities: list[str] = []


class RawCandidate(BaseModel):
    """Classifier input: a name plus the evidence gathered for it."""

    name: str
    type_guess: str | None = None
    confidence_guess: ConfidenceBucket = "low"
    score: float = 0
    frequency: int = 0
    chapter_spread: int = 0
    total_chapters: int = 0
    contexts: list[str] = []
    related_names: list[str] = []


class Classified(BaseModel):
    kind: Literal["classified"] = "classified"
    type: EntityType
    confidence: int = Field(ge=0, le=100)
    source: SourceLayer


class Filtered(BaseModel):
    kind: Literal["filtered"] = "filtered"
    reason: str
    detail: str | None = None


Verdict = Annotated[Union[Classified, Filtered], Field(discriminator="kind")]


class ClassifiedEntity(BaseModel):
    name: str
    score: float = 0
    frequency: int = 0
    chapter_spread: int = 0
    total_chapters: int = 0
    contexts: list[str] = []
    related_names: list[str] = []
    verdict: Verdict

    @computed_field
    @property
    def filtered(self) -> bool:
        return isinstance(self.verdict, Filtered)

    @computed_field
    @property
    def filter_reason(self) -> str | None:
        return self.verdict.reason if isinstance(self.verdict, Filtered) else None

    @computed_field
    @property
    def type(self) -> EntityType:
        return self.verdict.type if isinstance(self.verdict, Classified) else "character"

    @computed_field
    @property
    def confidence(self) -> int:
        return self.verdict.confidence if isinstance(self.verdict, Classified) else 0

    @computed_field
    @property
    def classified_by(self) -> SourceLayer:
        return self.verdict.source if isinstance(self.verdict, Classified) else "default"

    def with_verdict(self, verdict: Classified | Filtered) -> ClassifiedEntity:
        return self.model_copy(update={"verdict": verdict})


class PipelineStats(BaseModel):
    total_candidates: int = 0
    filtered_as_noise: int = 0
    auto_classified: int = 0
    needs_review: int = 0
    llm_enhanced: int = 0
    llm_cost: float | None = None


class PipelineResult(BaseModel):
    entities: list[ClassifiedEntity] = []
    filtered: list[ClassifiedEntity] = []
    needs_review: list[ClassifiedEntity] = []
    stats: PipelineStats = PipelineStats()


class LLMVerdict(BaseModel):
    """One remote verdict. ``type``/``confidence`` are None when the answer omitted them."""

    name: str
    type: EntityType | None = None
    confidence: int | None = Field(default=None, ge=0, le=100)
    is_noise: bool = False
    reasoning: str = ""


class LLMBatchResult(BaseModel):
    verdicts: list[LLMVerdict] = []
    cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    failed_batches: int = 0


LLMFailureKind = Literal["network", "auth", "timeout", "malformed", "config", "unknown"]


class LLMFailure(BaseModel):
    kind: LLMFailureKind
    message: str
