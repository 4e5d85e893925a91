"""Comparison metric models.

Defines the fixed metric set every supplier is compared on:
- MetricName: the seven comparison metrics
- BaseMetrics: raw per-supplier values (None = unknown)
- NormalizedMetrics: the same metrics rescaled to [0, 100] across the pool
- WeightVector: non-negative metric weights with a positive sum
- ComparisonBreakdown: composite score plus per-metric contributions
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricName(StrEnum):
    """Comparison metrics derived from a supplier's extracted proposal data."""

    PRICE_TOTAL = "price_total"
    REQUIREMENTS_COVERAGE_PCT = "requirements_coverage_pct"
    TECHNICAL_CLAIM_COUNT = "technical_claim_count"
    DIFFERENTIATOR_COUNT = "differentiator_count"
    RISK_COUNT = "risk_count"
    ASSUMPTION_COUNT = "assumption_count"
    DEMO_QUALITY = "demo_quality"


ALL_METRICS: tuple[MetricName, ...] = tuple(MetricName)

LOWER_IS_BETTER: frozenset[MetricName] = frozenset(
    {
        MetricName.PRICE_TOTAL,
        MetricName.RISK_COUNT,
        MetricName.ASSUMPTION_COUNT,
    }
)


class BaseMetrics(BaseModel):
    """Raw comparison metrics for one supplier on one opportunity.

    Created fresh on every comparison run and never persisted. A value of
    None means the upstream extraction could not provide it.
    """

    model_config = ConfigDict(frozen=True)

    supplier_id: str = Field(..., min_length=1)
    price_total: float | None = Field(default=None, ge=0.0, description="Lower is better")
    requirements_coverage_pct: float | None = Field(default=None, ge=0.0, le=100.0)
    technical_claim_count: int | None = Field(default=None, ge=0)
    differentiator_count: int | None = Field(default=None, ge=0)
    risk_count: int | None = Field(default=None, ge=0, description="Lower is better")
    assumption_count: int | None = Field(default=None, ge=0, description="Lower is better")
    demo_quality: float | None = Field(default=None, ge=0.0, le=100.0)

    def value(self, metric: MetricName) -> float | None:
        """Raw value of a metric, or None when unknown."""
        raw = getattr(self, metric.value)
        return None if raw is None else float(raw)


class NormalizedMetrics(BaseModel):
    """Comparison metrics rescaled to [0, 100] relative to the supplier pool."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    price_total: float = Field(..., ge=0.0, le=100.0)
    requirements_coverage_pct: float = Field(..., ge=0.0, le=100.0)
    technical_claim_count: float = Field(..., ge=0.0, le=100.0)
    differentiator_count: float = Field(..., ge=0.0, le=100.0)
    risk_count: float = Field(..., ge=0.0, le=100.0)
    assumption_count: float = Field(..., ge=0.0, le=100.0)
    demo_quality: float = Field(..., ge=0.0, le=100.0)

    def value(self, metric: MetricName) -> float:
        """Normalized value of a metric."""
        return float(getattr(self, metric.value))


class WeightVector(BaseModel):
    """Metric weights. Every weight is >= 0 and at least one is > 0.

    Metrics missing from ``weights`` carry weight 0.
    """

    model_config = ConfigDict(frozen=True)

    weights: dict[MetricName, float]

    @model_validator(mode="after")
    def _validate_weights(self) -> WeightVector:
        """Fail closed: no negative weights and a strictly positive sum."""
        negative = sorted(m.value for m, w in self.weights.items() if w < 0)
        if negative:
            raise ValueError(f"Weights must be non-negative; negative for: {negative}")
        total = sum(self.weights.values())
        if total <= 0:
            raise ValueError(f"Weights must sum to a positive value (got {total})")
        return self

    def weight(self, metric: MetricName) -> float:
        return self.weights.get(metric, 0.0)

    @property
    def total(self) -> float:
        return sum(self.weights.values())


class ComparisonBreakdown(BaseModel):
    """Composite comparison result for one supplier.

    ``weighted_scores`` holds each metric's contribution to ``total_score``
    (``weight * normalized / sum(weights)``), so the contributions add up to
    the total. ``rank`` is 1-based in presentation order.
    """

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    total_score: float = Field(..., ge=0.0, le=100.0)
    weighted_scores: dict[MetricName, float]
    metrics: NormalizedMetrics
    matrix_used: bool = Field(
        default=False, description="True when a buyer-authored evaluation matrix set the weights"
    )
    rank: int | None = Field(default=None, ge=1)
