"""Metric extractor adapter: SupplierExtraction -> BaseMetrics.

Pure mapping with no I/O. Unknown extraction sections produce unknown (None)
metrics; they are never coerced to zero.
"""

from __future__ import annotations

from collections.abc import Sequence

from supplier_eval.models.extraction import (
    CoverageStatus,
    DemoSummary,
    RequirementsCoverage,
    SupplierExtraction,
)
from supplier_eval.models.metrics import BaseMetrics

_DEMO_BASELINE = 50.0
_DEMO_STEP = 10.0

_COVERAGE_CREDIT: dict[CoverageStatus, float] = {
    CoverageStatus.FULLY_ADDRESSED: 1.0,
    CoverageStatus.PARTIALLY_ADDRESSED: 0.5,
    CoverageStatus.NOT_ADDRESSED: 0.0,
}


def coverage_percentage(coverage: RequirementsCoverage | None) -> float | None:
    """Coverage percentage from an explicit value or, failing that, from findings.

    Findings credit 1 for fully addressed and 0.5 for partially addressed;
    not-applicable findings are excluded from the denominator.
    """
    if coverage is None:
        return None
    if coverage.coverage_pct is not None:
        return coverage.coverage_pct
    credits = [
        _COVERAGE_CREDIT[f.status] for f in coverage.findings if f.status in _COVERAGE_CREDIT
    ]
    if not credits:
        return None
    return 100.0 * sum(credits) / len(credits)


def demo_quality_score(demo: DemoSummary | None) -> float | None:
    """50 + 10 per demonstrated capability - 10 per gap, clamped to [0, 100]."""
    if demo is None:
        return None
    raw = _DEMO_BASELINE + _DEMO_STEP * len(demo.capabilities) - _DEMO_STEP * len(demo.gaps)
    return max(0.0, min(100.0, raw))


def _count(items: Sequence[object] | None) -> int | None:
    return None if items is None else len(items)


def extract_base_metrics(supplier_id: str, extraction: SupplierExtraction) -> BaseMetrics:
    """Map one supplier's extraction onto the fixed comparison metric set.

    Args:
        supplier_id: Supplier the extraction belongs to.
        extraction: Parsed extraction (sections may be unknown).

    Returns:
        BaseMetrics with None for every metric whose source section is unknown.
    """
    return BaseMetrics(
        supplier_id=supplier_id,
        price_total=extraction.pricing.effective_total if extraction.pricing else None,
        requirements_coverage_pct=coverage_percentage(extraction.coverage),
        technical_claim_count=_count(extraction.technical_claims),
        differentiator_count=_count(extraction.differentiators),
        risk_count=_count(extraction.risks),
        assumption_count=_count(extraction.assumptions),
        demo_quality=demo_quality_score(extraction.demo),
    )
