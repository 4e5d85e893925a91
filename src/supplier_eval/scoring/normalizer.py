"""Cross-supplier normalizer.

Rescales every comparison metric onto [0, 100] relative to the supplier pool
of one opportunity:

- higher is better: 100 * (x - min) / (max - min)
- lower is better:  100 * (max - x) / (max - min)
- min == max collapses to 100 for every supplier with a known value

A single-supplier pool therefore normalizes to 100 on every metric. Unknown
values take no part in min/max; they receive the neutral score when at least
one other supplier has a known value, and 100 when nobody does.
"""

from __future__ import annotations

from collections.abc import Sequence

from supplier_eval.config import DEFAULT_NEUTRAL_METRIC_SCORE
from supplier_eval.errors import NoDataError, ValidationError
from supplier_eval.models.metrics import (
    ALL_METRICS,
    LOWER_IS_BETTER,
    BaseMetrics,
    MetricName,
    NormalizedMetrics,
)

_FULL_SCORE = 100.0


def _scale(value: float, lo: float, hi: float, lower_is_better: bool) -> float:
    if hi == lo:
        return _FULL_SCORE
    if lower_is_better:
        scaled = _FULL_SCORE * (hi - value) / (hi - lo)
    else:
        scaled = _FULL_SCORE * (value - lo) / (hi - lo)
    return max(0.0, min(_FULL_SCORE, scaled))


def normalize_metric(
    values: Sequence[float | None],
    *,
    lower_is_better: bool,
    neutral_score: float = DEFAULT_NEUTRAL_METRIC_SCORE,
) -> list[float]:
    """Normalize one metric column, preserving input order.

    Args:
        values: Raw values per supplier (None = unknown).
        lower_is_better: Inverse scaling when True.
        neutral_score: Score given to unknown values when others are known.

    Returns:
        Normalized values in [0, 100], one per input value.
    """
    known = [v for v in values if v is not None]
    if not known:
        return [_FULL_SCORE for _ in values]
    lo, hi = min(known), max(known)
    return [
        neutral_score if v is None else _scale(v, lo, hi, lower_is_better) for v in values
    ]


def normalize(
    pool: Sequence[BaseMetrics],
    *,
    neutral_score: float = DEFAULT_NEUTRAL_METRIC_SCORE,
) -> list[NormalizedMetrics]:
    """Normalize a pool of supplier metrics for one opportunity.

    Deterministic and side-effect free: the result for each supplier depends
    only on the pool's contents, never on call order.

    Args:
        pool: BaseMetrics for every competing supplier (1..N).
        neutral_score: Score given to unknown metric values.

    Returns:
        NormalizedMetrics in the same order as ``pool``.

    Raises:
        NoDataError: If the pool is empty.
        ValidationError: If a supplier appears twice.
    """
    if not pool:
        raise NoDataError("Cannot normalize an empty supplier pool")
    supplier_ids = [m.supplier_id for m in pool]
    if len(set(supplier_ids)) != len(supplier_ids):
        raise ValidationError(
            "Supplier pool contains duplicate supplier ids",
            details={"supplier_ids": sorted(supplier_ids)},
        )

    columns: dict[MetricName, list[float]] = {
        metric: normalize_metric(
            [m.value(metric) for m in pool],
            lower_is_better=metric in LOWER_IS_BETTER,
            neutral_score=neutral_score,
        )
        for metric in ALL_METRICS
    }

    return [
        NormalizedMetrics(
            supplier_id=base.supplier_id,
            **{metric.value: columns[metric][i] for metric in ALL_METRICS},
        )
        for i, base in enumerate(pool)
    ]
