"""Tests for extraction parsing and the metric extractor adapter."""

from __future__ import annotations

from supplier_eval.models.extraction import (
    CoverageFinding,
    CoverageStatus,
    DemoSummary,
    PricingSummary,
    RequirementsCoverage,
    SupplierExtraction,
    parse_extraction,
)
from supplier_eval.scoring.metric_adapter import (
    coverage_percentage,
    demo_quality_score,
    extract_base_metrics,
)


def _finding(status: CoverageStatus, requirement_id: str = "R1") -> CoverageFinding:
    return CoverageFinding(requirement_id=requirement_id, status=status)


class TestParseExtraction:
    """Malformed sections degrade to unknown without failing the parse."""

    def test_none_is_fully_unknown(self) -> None:
        extraction = parse_extraction(None)

        assert extraction == SupplierExtraction()

    def test_non_mapping_is_fully_unknown(self) -> None:
        extraction = parse_extraction(["not", "a", "mapping"])  # type: ignore[arg-type]

        assert extraction.pricing is None
        assert extraction.answers == []

    def test_malformed_section_dropped_others_kept(self) -> None:
        extraction = parse_extraction(
            {
                "pricing": {"total_cost": -5},
                "risks": [{"description": "Vendor lock-in", "severity": "HIGH"}],
                "answers": [{"requirement_id": "R1", "text": "Yes"}],
            },
            supplier_id="acme",
        )

        assert extraction.pricing is None
        assert extraction.risks is not None
        assert len(extraction.risks) == 1
        assert extraction.answer_for("R1") is not None

    def test_unknown_keys_ignored(self) -> None:
        extraction = parse_extraction({"pricing": {"total_cost": 10, "discount_code": "X"}})

        assert extraction.pricing is not None
        assert extraction.pricing.total_cost == 10


class TestCoveragePercentage:
    def test_explicit_percentage_wins(self) -> None:
        coverage = RequirementsCoverage(
            coverage_pct=72.5, findings=[_finding(CoverageStatus.NOT_ADDRESSED)]
        )

        assert coverage_percentage(coverage) == 72.5

    def test_derived_from_findings_excluding_not_applicable(self) -> None:
        coverage = RequirementsCoverage(
            findings=[
                _finding(CoverageStatus.FULLY_ADDRESSED, "R1"),
                _finding(CoverageStatus.PARTIALLY_ADDRESSED, "R2"),
                _finding(CoverageStatus.NOT_ADDRESSED, "R3"),
                _finding(CoverageStatus.NOT_APPLICABLE, "R4"),
            ]
        )

        assert coverage_percentage(coverage) == 50.0

    def test_unknown_when_no_signal(self) -> None:
        assert coverage_percentage(None) is None
        assert coverage_percentage(RequirementsCoverage()) is None


class TestDemoQuality:
    def test_capabilities_and_gaps(self) -> None:
        demo = DemoSummary(capabilities=["a", "b", "c"], gaps=["x"])

        assert demo_quality_score(demo) == 70.0

    def test_clamped_to_range(self) -> None:
        assert demo_quality_score(DemoSummary(capabilities=["c"] * 10)) == 100.0
        assert demo_quality_score(DemoSummary(gaps=["g"] * 10)) == 0.0

    def test_unknown_demo(self) -> None:
        assert demo_quality_score(None) is None


class TestExtractBaseMetrics:
    def test_unknown_sections_are_none_not_zero(self) -> None:
        metrics = extract_base_metrics("acme", SupplierExtraction())

        assert metrics.supplier_id == "acme"
        assert metrics.price_total is None
        assert metrics.requirements_coverage_pct is None
        assert metrics.risk_count is None
        assert metrics.demo_quality is None

    def test_empty_lists_are_known_zero(self) -> None:
        metrics = extract_base_metrics(
            "acme", SupplierExtraction(risks=[], assumptions=[], differentiators=[])
        )

        assert metrics.risk_count == 0
        assert metrics.assumption_count == 0
        assert metrics.differentiator_count == 0

    def test_total_cost_preferred_over_estimate(self) -> None:
        both = extract_base_metrics(
            "acme",
            SupplierExtraction(pricing=PricingSummary(total_cost=1200, estimated_total=900)),
        )
        estimate_only = extract_base_metrics(
            "acme", SupplierExtraction(pricing=PricingSummary(estimated_total=900))
        )

        assert both.price_total == 1200
        assert estimate_only.price_total == 900
