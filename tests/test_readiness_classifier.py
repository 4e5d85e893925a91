"""Tests for the readiness classifier."""

from __future__ import annotations

import pytest

from supplier_eval.config import EngineConfig
from supplier_eval.models.extraction import (
    ComplianceFinding,
    ComplianceReport,
    DemoRating,
    DemoSummary,
    HiddenFee,
    MandatoryLevel,
    MandatoryStatus,
    PricingSummary,
    RequirementsCoverage,
    RiskFlag,
    Severity,
)
from supplier_eval.models.readiness import ReadinessIndicator, ReadinessInput
from supplier_eval.readiness.classifier import classify, resolve_indicator


def _mandatory(
    requirement_id: str, status: MandatoryLevel, *, critical: bool = False, title: str = ""
) -> MandatoryStatus:
    return MandatoryStatus(
        requirement_id=requirement_id, title=title, status=status, critical=critical
    )


def _risks(severity: Severity, count: int) -> list[RiskFlag]:
    return [
        RiskFlag(description=f"{severity.value} risk {i}", severity=severity) for i in range(count)
    ]


class TestClassify:
    """End-to-end classification of representative suppliers."""

    def test_strong_supplier_is_ready(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=95.0),
            mandatory_status=[
                _mandatory("M1", MandatoryLevel.MET),
                _mandatory("M2", MandatoryLevel.MET),
            ],
            compliance=ComplianceReport(score=90.0),
            risks=[],
            pricing=PricingSummary(total_cost=1000.0),
            demo=DemoSummary(overall_rating=DemoRating.EXCELLENT),
        )

        result = classify(data)

        assert result.indicator == ReadinessIndicator.READY
        assert result.score == 97.5
        assert result.critical_issues == []
        assert result.strengths == [
            "All 2 mandatory requirements met",
            "Strong compliance score (90.0)",
            "No risks flagged",
            "Transparent pricing with no hidden fees",
            "High requirements coverage (95.0%)",
            "Demo rated excellent",
        ]

    def test_critical_gaps_make_supplier_not_ready(self) -> None:
        data = ReadinessInput(
            supplier_id="globex",
            coverage=RequirementsCoverage(coverage_pct=60.0),
            mandatory_status=[
                _mandatory("M1", MandatoryLevel.NOT_MET, critical=True, title="Data residency"),
                _mandatory("M2", MandatoryLevel.MET),
            ],
            compliance=ComplianceReport(
                findings=[
                    ComplianceFinding(finding_id="F1", title="SOC 2 report", severity=Severity.HIGH)
                ]
            ),
        )

        result = classify(data)

        assert result.indicator == ReadinessIndicator.NOT_READY
        assert result.score == 30.0
        assert result.critical_issues == [
            "Critical mandatory requirement not met: Data residency",
            "Unresolved high compliance gap: SOC 2 report",
        ]

    def test_resolved_findings_are_not_penalized(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=85.0),
            compliance=ComplianceReport(
                findings=[
                    ComplianceFinding(
                        finding_id="F1", title="Pen test", severity=Severity.CRITICAL, resolved=True
                    )
                ]
            ),
        )

        result = classify(data)

        assert result.score == 85.0
        assert result.critical_issues == []

    def test_unknown_signals_use_neutral_base(self) -> None:
        result = classify(ReadinessInput(supplier_id="initech"))

        assert result.score == 60.0
        assert result.indicator == ReadinessIndicator.CONDITIONAL
        assert result.conditional_factors == ["Requirements coverage and mandatory status unknown"]
        assert result.rationale == (
            "Conditionally ready (readiness score 60.0/100). "
            "Conditional factors: Requirements coverage and mandatory status unknown."
        )

    def test_many_high_risks_are_a_critical_issue(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=100.0),
            risks=_risks(Severity.HIGH, 3),
        )

        result = classify(data)

        assert result.score == 70.0
        assert result.critical_issues == ["3 high-severity risks flagged"]

    def test_few_high_risks_are_conditional(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=100.0),
            risks=_risks(Severity.CRITICAL, 1) + _risks(Severity.MEDIUM, 4),
        )

        result = classify(data)

        assert result.score == 85.0
        assert result.critical_issues == []
        assert len(result.conditional_factors) == 2

    def test_severe_hidden_fee_penalized(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=80.0),
            pricing=PricingSummary(
                total_cost=1000.0,
                hidden_fees=[HiddenFee(description="Egress", severity=Severity.HIGH)],
            ),
        )

        result = classify(data)

        assert result.score == 75.0
        assert result.conditional_factors == ["1 significant hidden fees in pricing"]

    def test_score_clamped_at_zero(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=10.0),
            risks=_risks(Severity.CRITICAL, 5),
        )

        result = classify(data)

        assert result.score == 0.0
        assert result.indicator == ReadinessIndicator.NOT_READY

    def test_same_input_same_rationale(self) -> None:
        data = ReadinessInput(
            supplier_id="acme",
            coverage=RequirementsCoverage(coverage_pct=72.0),
            compliance=ComplianceReport(score=65.0),
        )

        assert classify(data) == classify(data)


class TestResolveIndicator:
    @pytest.mark.parametrize(
        ("score", "indicator"),
        [
            (80.0, ReadinessIndicator.READY),
            (79.99, ReadinessIndicator.CONDITIONAL),
            (60.0, ReadinessIndicator.CONDITIONAL),
            (59.99, ReadinessIndicator.NOT_READY),
        ],
    )
    def test_threshold_boundaries(self, score: float, indicator: ReadinessIndicator) -> None:
        assert resolve_indicator(score, EngineConfig()) == indicator

    def test_custom_thresholds(self) -> None:
        config = EngineConfig(ready_threshold=90.0, conditional_threshold=70.0)

        assert resolve_indicator(85.0, config) == ReadinessIndicator.CONDITIONAL
