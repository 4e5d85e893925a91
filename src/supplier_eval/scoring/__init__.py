"""Supplier scoring: metric extraction, normalization, weighting and auto-scoring.

Pipeline for a comparison run:
- extract_base_metrics: extraction -> BaseMetrics (pure)
- normalize: pool of BaseMetrics -> NormalizedMetrics in [0, 100]
- compare / rank_breakdowns: weighted composite per supplier, ranked
"""

from supplier_eval.scoring.auto_scorer import AutoScorer, SemanticScorer, level_for_score
from supplier_eval.scoring.comparison import compare, compare_pool, rank_breakdowns
from supplier_eval.scoring.metric_adapter import extract_base_metrics
from supplier_eval.scoring.normalizer import normalize
from supplier_eval.scoring.weights import (
    DEFAULT_WEIGHTS,
    default_weight_vector,
    make_weight_vector,
    resolve_weights,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "AutoScorer",
    "SemanticScorer",
    "compare",
    "compare_pool",
    "default_weight_vector",
    "extract_base_metrics",
    "level_for_score",
    "make_weight_vector",
    "normalize",
    "rank_breakdowns",
    "resolve_weights",
]
