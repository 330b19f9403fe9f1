"""Cost estimation for remote entity classification."""

from __future__ import annotations

from dataclasses import dataclass

from novelmap.infra import config

# ── Pricing per 1M tokens (USD) ─────────────────────

_PRICING: dict[str, tuple[float, float]] = {
    # (input_per_1m, output_per_1m)
    "claude-haiku-4-5": (1.00, 5.00),
    "claude-3-5-haiku": (0.80, 4.00),
    "claude-sonnet-4-5": (3.00, 15.00),
    "claude-sonnet-4": (3.00, 15.00),
    "claude-opus-4-1": (15.00, 75.00),
}

_DEFAULT_PRICING = (1.00, 5.00)  # Haiku-class fallback

# ── Token estimation constants ───────────────────────

# Classification system prompt, sent once per request
_SYSTEM_PROMPT_TOKENS = 400

# One candidate line with up to three context snippets
_INPUT_TOKENS_PER_CANDIDATE = 80

# One JSON verdict object
_OUTPUT_TOKENS_PER_CANDIDATE = 40


@dataclass
class ClassificationCostEstimate:
    """Cost estimate for sending candidates to the remote classifier."""

    model: str
    candidate_count: int
    estimated_input_tokens: int
    estimated_output_tokens: int
    estimated_cost_usd: float
    input_price_per_1m: float
    output_price_per_1m: float


def get_pricing(model: str) -> tuple[float, float]:
    """Get (input_per_1m, output_per_1m) pricing for a model."""
    if model in _PRICING:
        return _PRICING[model]
    # Dated snapshots, e.g. "claude-haiku-4-5-20251001" -> "claude-haiku-4-5"
    for key, pricing in _PRICING.items():
        if model.startswith(key):
            return pricing
    return _DEFAULT_PRICING


def compute_cost(input_tokens: int, output_tokens: int, model: str | None = None) -> float:
    """USD cost of actual usage, rounded to 4 decimals."""
    input_price, output_price = get_pricing(model or config.LLM_MODEL)
    cost = (input_tokens / 1_000_000) * input_price + (output_tokens / 1_000_000) * output_price
    return round(cost, 4)


def estimate_classification_cost(
    candidate_count: int,
    model: str | None = None,
) -> ClassificationCostEstimate:
    """Estimate remote classification cost from the needs-review count alone.

    Deterministic: no I/O, same answer for the same count and model.
    """
    effective_model = model or config.LLM_MODEL
    input_price, output_price = get_pricing(effective_model)

    count = max(candidate_count, 0)
    input_tokens = _SYSTEM_PROMPT_TOKENS + count * _INPUT_TOKENS_PER_CANDIDATE
    output_tokens = count * _OUTPUT_TOKENS_PER_CANDIDATE

    return ClassificationCostEstimate(
        model=effective_model,
        candidate_count=count,
        estimated_input_tokens=input_tokens,
        estimated_output_tokens=output_tokens,
        estimated_cost_usd=compute_cost(input_tokens, output_tokens, effective_model),
        input_price_per_1m=input_price,
        output_price_per_1m=output_price,
    )
