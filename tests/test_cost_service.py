"""Tests for remote classification cost estimation."""

import pytest

from novelmap.services.cost_service import (
    ClassificationCostEstimate,
    compute_cost,
    estimate_classification_cost,
    get_pricing,
)


def test_get_pricing_known_model():
    """Should return exact pricing for known models."""
    assert get_pricing("claude-sonnet-4-5") == (3.00, 15.00)


def test_get_pricing_dated_snapshot():
    """Dated model ids resolve to their family prefix."""
    assert get_pricing("claude-haiku-4-5-20251001") == (1.00, 5.00)
    assert get_pricing("claude-opus-4-1-20250805") == (15.00, 75.00)


def test_get_pricing_unknown_model():
    assert get_pricing("custom-unknown-model") == (1.00, 5.00)


def test_compute_cost_rounds_to_four_decimals():
    assert compute_cost(1_000_000, 0, "claude-sonnet-4-5") == 3.0
    assert compute_cost(123, 45, "claude-haiku-4-5") == pytest.approx(0.0003)


def test_estimate_basic():
    est = estimate_classification_cost(10, model="claude-haiku-4-5")
    assert isinstance(est, ClassificationCostEstimate)
    assert est.candidate_count == 10
    assert est.estimated_input_tokens == 400 + 10 * 80
    assert est.estimated_output_tokens == 10 * 40
    # 1200 * $1/M + 400 * $5/M
    assert est.estimated_cost_usd == pytest.approx(0.0032)
    assert est.input_price_per_1m == 1.00


def test_estimate_is_deterministic_and_monotonic():
    a = estimate_classification_cost(25, model="claude-sonnet-4-5")
    b = estimate_classification_cost(25, model="claude-sonnet-4-5")
    more = estimate_classification_cost(50, model="claude-sonnet-4-5")
    assert a == b
    assert more.estimated_cost_usd > a.estimated_cost_usd


def test_estimate_zero_candidates_costs_only_the_prompt():
    est = estimate_classification_cost(0, model="claude-haiku-4-5")
    assert est.estimated_output_tokens == 0
    assert est.estimated_input_tokens == 400
