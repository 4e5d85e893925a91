"""Metric weight vectors.

Default weights follow the buyer-facing comparison defaults:
coverage 30, pricing 25, technical strength 15, differentiators 10,
risk profile 10, assumptions 5, demo quality 5.

A buyer-authored evaluation matrix is converted through the fixed
CRITERION_METRICS table. Unknown criteria are dropped (logged) and every slot
the matrix does not mention keeps its default weight. If the resulting vector
is invalid the defaults are used instead and ``matrix_used`` is False.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from pydantic import ValidationError as PydanticValidationError

from supplier_eval.errors import ValidationError
from supplier_eval.models.metrics import MetricName, WeightVector
from supplier_eval.models.opportunity import EvaluationCriterion

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: dict[MetricName, float] = {
    MetricName.REQUIREMENTS_COVERAGE_PCT: 30.0,
    MetricName.PRICE_TOTAL: 25.0,
    MetricName.TECHNICAL_CLAIM_COUNT: 15.0,
    MetricName.DIFFERENTIATOR_COUNT: 10.0,
    MetricName.RISK_COUNT: 10.0,
    MetricName.ASSUMPTION_COUNT: 5.0,
    MetricName.DEMO_QUALITY: 5.0,
}

# Evaluation-matrix criterion ids (as authored in buyer templates) -> metric.
CRITERION_METRICS: dict[str, MetricName] = {
    "requirementsCoverage": MetricName.REQUIREMENTS_COVERAGE_PCT,
    "pricingCompetitiveness": MetricName.PRICE_TOTAL,
    "technicalStrength": MetricName.TECHNICAL_CLAIM_COUNT,
    "differentiators": MetricName.DIFFERENTIATOR_COUNT,
    "riskProfile": MetricName.RISK_COUNT,
    "assumptionsQuality": MetricName.ASSUMPTION_COUNT,
    "demoQuality": MetricName.DEMO_QUALITY,
    **{metric.value: metric for metric in MetricName},
}


def make_weight_vector(weights: Mapping[MetricName, float]) -> WeightVector:
    """Build a validated WeightVector.

    Raises:
        ValidationError: If any weight is negative or the weights sum to zero.
    """
    try:
        return WeightVector(weights=dict(weights))
    except PydanticValidationError as exc:
        messages = [err.get("msg", "invalid weight") for err in exc.errors()]
        raise ValidationError(
            "Malformed weight vector",
            details={"errors": messages, "weights": {str(k): v for k, v in weights.items()}},
        ) from exc


def default_weight_vector() -> WeightVector:
    return make_weight_vector(DEFAULT_WEIGHTS)


def weights_from_criteria(
    criteria: Sequence[EvaluationCriterion],
) -> tuple[WeightVector, bool]:
    """Convert buyer evaluation criteria into a WeightVector.

    Args:
        criteria: Buyer-authored criteria with weights.

    Returns:
        Tuple of (weights, any_mapped). ``any_mapped`` is False when no
        criterion matched a metric, in which case the weights are the defaults.

    Raises:
        ValidationError: If the overlaid weights are malformed.
    """
    weights = dict(DEFAULT_WEIGHTS)
    mapped = 0
    for criterion in criteria:
        metric = CRITERION_METRICS.get(criterion.criterion_id)
        if metric is None:
            logger.info(
                "Dropping unmapped evaluation criterion %r (keeps default weights)",
                criterion.criterion_id,
            )
            continue
        weights[metric] = criterion.weight
        mapped += 1
    return make_weight_vector(weights), mapped > 0


def resolve_weights(
    criteria: Sequence[EvaluationCriterion] | None,
) -> tuple[WeightVector, bool]:
    """Resolve the weights for a comparison run.

    Never raises: a malformed buyer matrix is logged and replaced by the
    default vector.

    Args:
        criteria: Buyer evaluation matrix criteria, or None when absent.

    Returns:
        Tuple of (weights, matrix_used).
    """
    if not criteria:
        return default_weight_vector(), False
    try:
        return weights_from_criteria(criteria)
    except ValidationError as exc:
        logger.warning(
            "Evaluation matrix weights rejected (%s); falling back to default weights",
            exc.message,
        )
        return default_weight_vector(), False
