"""Weighted comparison engine.

total_score = sum(w_i * n_i) / sum(w_i), clamped to [0, 100].

Scores are rounded to a fixed precision so that reruns and positively
rescaled weight vectors produce identical output.
"""

from __future__ import annotations

from collections.abc import Sequence

from supplier_eval.models.metrics import (
    ALL_METRICS,
    BaseMetrics,
    ComparisonBreakdown,
    NormalizedMetrics,
    WeightVector,
)
from supplier_eval.scoring.normalizer import normalize

SCORE_PRECISION = 6


def compare(
    normalized: NormalizedMetrics,
    weights: WeightVector,
    *,
    matrix_used: bool = False,
) -> ComparisonBreakdown:
    """Combine one supplier's normalized metrics into a composite score.

    Args:
        normalized: The supplier's normalized metrics.
        weights: Validated weight vector (sum > 0).
        matrix_used: Whether the weights came from a buyer evaluation matrix.

    Returns:
        ComparisonBreakdown without a rank.
    """
    weight_total = weights.total
    contributions = {
        metric: weights.weight(metric) * normalized.value(metric) / weight_total
        for metric in ALL_METRICS
    }
    total = max(0.0, min(100.0, sum(contributions.values())))
    return ComparisonBreakdown(
        supplier_id=normalized.supplier_id,
        total_score=round(total, SCORE_PRECISION),
        weighted_scores={m: round(v, SCORE_PRECISION) for m, v in contributions.items()},
        metrics=normalized,
        matrix_used=matrix_used,
    )


def rank_breakdowns(breakdowns: Sequence[ComparisonBreakdown]) -> list[ComparisonBreakdown]:
    """Order breakdowns by descending total score, ties by supplier id, and assign ranks."""
    ordered = sorted(breakdowns, key=lambda b: (-b.total_score, b.supplier_id))
    return [b.model_copy(update={"rank": i}) for i, b in enumerate(ordered, start=1)]


def compare_pool(
    pool: Sequence[BaseMetrics],
    weights: WeightVector,
    *,
    matrix_used: bool = False,
    neutral_score: float | None = None,
) -> list[ComparisonBreakdown]:
    """Normalize a supplier pool, score each supplier and rank the results.

    The per-supplier scoring is an independent map step; ranking is the only
    step that looks across suppliers.
    """
    if neutral_score is None:
        normalized = normalize(pool)
    else:
        normalized = normalize(pool, neutral_score=neutral_score)
    return rank_breakdowns([compare(n, weights, matrix_used=matrix_used) for n in normalized])
