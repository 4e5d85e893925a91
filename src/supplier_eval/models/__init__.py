"""Supplier evaluation domain models."""

from supplier_eval.models.extraction import (
    SupplierExtraction,
    parse_extraction,
)
from supplier_eval.models.matrix import (
    MatrixCell,
    MatrixFilters,
    MatrixMeta,
    MatrixRow,
    ScoringMatrix,
    SupplierSummary,
)
from supplier_eval.models.metrics import (
    BaseMetrics,
    ComparisonBreakdown,
    MetricName,
    NormalizedMetrics,
    WeightVector,
)
from supplier_eval.models.opportunity import (
    EvaluationCriterion,
    Importance,
    Requirement,
    RequirementCategory,
    ScoringType,
    SupplierResponse,
)
from supplier_eval.models.readiness import (
    BatchReadinessResult,
    ReadinessIndicator,
    ReadinessInput,
    ReadinessResult,
)
from supplier_eval.models.scores import (
    AutoScore,
    BuyerOverride,
    EvaluationSummary,
    EvaluationWorkspace,
    EvaluatorComment,
    RequirementScore,
    ScoreLevel,
    ScoreSet,
    ScoringItem,
    ScoringMethod,
    VarianceLevel,
)

__all__ = [
    "AutoScore",
    "BaseMetrics",
    "BatchReadinessResult",
    "BuyerOverride",
    "ComparisonBreakdown",
    "EvaluationCriterion",
    "EvaluationSummary",
    "EvaluationWorkspace",
    "EvaluatorComment",
    "Importance",
    "MatrixCell",
    "MatrixFilters",
    "MatrixMeta",
    "MatrixRow",
    "MetricName",
    "NormalizedMetrics",
    "ReadinessIndicator",
    "ReadinessInput",
    "ReadinessResult",
    "Requirement",
    "RequirementCategory",
    "RequirementScore",
    "ScoreLevel",
    "ScoreSet",
    "ScoringItem",
    "ScoringMatrix",
    "ScoringMethod",
    "ScoringType",
    "SupplierExtraction",
    "SupplierResponse",
    "SupplierSummary",
    "VarianceLevel",
    "WeightVector",
    "parse_extraction",
]
