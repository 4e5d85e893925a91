"""Variance and must-have derivations over effective scores.

All values here are derived on read from a RequirementScore; none of them is
ever persisted.
"""

from __future__ import annotations

from supplier_eval.config import EngineConfig
from supplier_eval.models.scores import RequirementScore, VarianceLevel


def compute_variance(score: RequirementScore) -> float:
    """|auto - effective| when an override exists, else 0."""
    if score.buyer_override is None:
        return 0.0
    return abs(score.auto_score.raw_score - score.effective_score)


def classify_variance(variance: float, config: EngineConfig) -> VarianceLevel:
    """Bucket a variance: low below medium threshold, high above high threshold.

    With defaults: low < 10, medium 10-25 inclusive, high > 25.
    """
    if variance < config.variance_medium_threshold:
        return VarianceLevel.LOW
    if variance <= config.variance_high_threshold:
        return VarianceLevel.MEDIUM
    return VarianceLevel.HIGH


def is_must_have_violation(must_have: bool, effective_score: float, config: EngineConfig) -> bool:
    return must_have and effective_score < config.must_have_min_score
