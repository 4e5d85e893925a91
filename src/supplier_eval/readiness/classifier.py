"""Readiness classifier.

Deterministic rule combination:
1. Base score = mean of the known signals among requirements coverage % and
   mandatory pass rate (partial counts half). Neither known: neutral base.
2. Subtract enumerated penalties (compliance gaps, unmet critical mandatories,
   compliance score bands, high/medium risks, hidden fees, unaddressed
   requirements).
3. Clamp to [0, 100] and threshold:
   score >= ready -> READY, score >= conditional -> CONDITIONAL, else NOT_READY.

Every penalty and strength is recorded as text, and the rationale is rendered
from those lists, so the same inputs always produce the same rationale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from supplier_eval.config import EngineConfig, ReadinessPolicy
from supplier_eval.models.extraction import (
    HIGH_SEVERITIES,
    CoverageStatus,
    DemoRating,
    MandatoryLevel,
    Severity,
)
from supplier_eval.models.readiness import ReadinessIndicator, ReadinessInput, ReadinessResult
from supplier_eval.scoring.metric_adapter import coverage_percentage

logger = logging.getLogger(__name__)

_INDICATOR_LABELS: dict[ReadinessIndicator, str] = {
    ReadinessIndicator.READY: "Ready to proceed",
    ReadinessIndicator.CONDITIONAL: "Conditionally ready",
    ReadinessIndicator.NOT_READY: "Not ready",
}

_MANDATORY_CREDIT: dict[MandatoryLevel, float] = {
    MandatoryLevel.MET: 1.0,
    MandatoryLevel.PARTIAL: 0.5,
    MandatoryLevel.NOT_MET: 0.0,
}


@dataclass
class _Assessment:
    score: float
    critical_issues: list[str] = field(default_factory=list)
    conditional_factors: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)

    def penalize(self, amount: float, issue: str, *, critical: bool) -> None:
        self.score -= amount
        if critical:
            self.critical_issues.append(issue)
        else:
            self.conditional_factors.append(issue)


def resolve_indicator(score: float, config: EngineConfig) -> ReadinessIndicator:
    """Threshold a readiness score. Lower bounds are inclusive."""
    if score >= config.ready_threshold:
        return ReadinessIndicator.READY
    if score >= config.conditional_threshold:
        return ReadinessIndicator.CONDITIONAL
    return ReadinessIndicator.NOT_READY


def _base_score(data: ReadinessInput, policy: ReadinessPolicy) -> _Assessment:
    signals: list[float] = []
    coverage = coverage_percentage(data.coverage)
    if coverage is not None:
        signals.append(coverage)
    if data.mandatory_status:
        credit = sum(_MANDATORY_CREDIT[m.status] for m in data.mandatory_status)
        signals.append(100.0 * credit / len(data.mandatory_status))
    if not signals:
        assessment = _Assessment(score=policy.neutral_base_score)
        assessment.conditional_factors.append("Requirements coverage and mandatory status unknown")
        return assessment
    return _Assessment(score=sum(signals) / len(signals))


def _assess_mandatory(data: ReadinessInput, policy: ReadinessPolicy, out: _Assessment) -> None:
    if not data.mandatory_status:
        return
    not_met = [m for m in data.mandatory_status if m.status == MandatoryLevel.NOT_MET]
    for m in not_met:
        label = m.title or m.requirement_id
        if m.critical:
            out.penalize(
                policy.unmet_critical_mandatory_penalty,
                f"Critical mandatory requirement not met: {label}",
                critical=True,
            )
        else:
            out.conditional_factors.append(f"Mandatory requirement not met: {label}")
    if all(m.status == MandatoryLevel.MET for m in data.mandatory_status):
        out.strengths.append(f"All {len(data.mandatory_status)} mandatory requirements met")


def _assess_compliance(data: ReadinessInput, policy: ReadinessPolicy, out: _Assessment) -> None:
    if data.compliance is None:
        return
    for finding in data.compliance.findings:
        if not finding.resolved and finding.severity in HIGH_SEVERITIES:
            out.penalize(
                policy.critical_gap_penalty,
                f"Unresolved {finding.severity.value.lower()} compliance gap: {finding.title}",
                critical=True,
            )
    score = data.compliance.score
    if score is None:
        return
    if score < policy.compliance_critical_below:
        out.penalize(
            policy.compliance_critical_penalty,
            f"Compliance score {score:.1f} below {policy.compliance_critical_below:g}",
            critical=True,
        )
    elif score < policy.compliance_conditional_below:
        out.penalize(
            policy.compliance_conditional_penalty,
            f"Compliance score {score:.1f} below {policy.compliance_conditional_below:g}",
            critical=False,
        )
    elif score >= policy.compliance_strength_at:
        out.strengths.append(f"Strong compliance score ({score:.1f})")


def _assess_risks(data: ReadinessInput, policy: ReadinessPolicy, out: _Assessment) -> None:
    if data.risks is None:
        return
    if not data.risks:
        out.strengths.append("No risks flagged")
        return
    high = [r for r in data.risks if r.severity in HIGH_SEVERITIES]
    if len(high) >= policy.high_risk_critical_count:
        out.penalize(
            policy.high_risk_penalty * len(high),
            f"{len(high)} high-severity risks flagged",
            critical=True,
        )
    else:
        for risk in high:
            out.penalize(
                policy.high_risk_penalty,
                f"High-severity risk: {risk.description}",
                critical=False,
            )
    medium = [r for r in data.risks if r.severity == Severity.MEDIUM]
    if len(medium) > policy.medium_risk_limit:
        out.penalize(
            policy.medium_risk_penalty,
            f"{len(medium)} medium-severity risks flagged",
            critical=False,
        )


def _assess_pricing(data: ReadinessInput, policy: ReadinessPolicy, out: _Assessment) -> None:
    if data.pricing is None:
        return
    severe = [f for f in data.pricing.hidden_fees if f.severity in HIGH_SEVERITIES]
    if severe:
        out.penalize(
            policy.hidden_fee_penalty,
            f"{len(severe)} significant hidden fees in pricing",
            critical=False,
        )
    elif not data.pricing.hidden_fees:
        out.strengths.append("Transparent pricing with no hidden fees")


def _assess_coverage(data: ReadinessInput, policy: ReadinessPolicy, out: _Assessment) -> None:
    coverage = coverage_percentage(data.coverage)
    if coverage is None or data.coverage is None:
        return
    not_addressed = sum(
        1 for f in data.coverage.findings if f.status == CoverageStatus.NOT_ADDRESSED
    )
    if not_addressed > policy.not_addressed_limit:
        out.penalize(
            policy.not_addressed_penalty,
            f"{not_addressed} requirements not addressed",
            critical=False,
        )
    if coverage >= policy.coverage_strength_at:
        out.strengths.append(f"High requirements coverage ({coverage:.1f}%)")


def _assess_demo(data: ReadinessInput, out: _Assessment) -> None:
    if data.demo is None or data.demo.overall_rating is None:
        return
    rating = data.demo.overall_rating
    if rating in (DemoRating.EXCELLENT, DemoRating.GOOD):
        out.strengths.append(f"Demo rated {rating.value.lower()}")
    elif rating == DemoRating.POOR:
        out.conditional_factors.append("Demo rated poor")


def render_rationale(
    indicator: ReadinessIndicator,
    score: float,
    critical_issues: list[str],
    conditional_factors: list[str],
    strengths: list[str],
) -> str:
    """Render the fixed rationale template."""
    parts = [f"{_INDICATOR_LABELS[indicator]} (readiness score {score:.1f}/100)."]
    if critical_issues:
        parts.append("Critical issues: " + "; ".join(critical_issues) + ".")
    if conditional_factors:
        parts.append("Conditional factors: " + "; ".join(conditional_factors) + ".")
    if strengths:
        parts.append("Strengths: " + "; ".join(strengths) + ".")
    return " ".join(parts)


def classify(data: ReadinessInput, config: EngineConfig | None = None) -> ReadinessResult:
    """Classify a supplier's readiness to proceed.

    Args:
        data: Readiness signals for one supplier.
        config: Engine configuration (thresholds and penalty policy).

    Returns:
        ReadinessResult with indicator, score, rationale and enumerated reasons.
    """
    config = config or EngineConfig()
    policy = config.readiness

    assessment = _base_score(data, policy)
    _assess_mandatory(data, policy, assessment)
    _assess_compliance(data, policy, assessment)
    _assess_risks(data, policy, assessment)
    _assess_pricing(data, policy, assessment)
    _assess_coverage(data, policy, assessment)
    _assess_demo(data, assessment)

    score = max(0.0, min(100.0, assessment.score))
    indicator = resolve_indicator(score, config)
    logger.debug(
        "Readiness for supplier %s: %s (%.2f)", data.supplier_id, indicator.value, score
    )
    return ReadinessResult(
        supplier_id=data.supplier_id,
        indicator=indicator,
        score=score,
        rationale=render_rationale(
            indicator,
            score,
            assessment.critical_issues,
            assessment.conditional_factors,
            assessment.strengths,
        ),
        critical_issues=assessment.critical_issues,
        conditional_factors=assessment.conditional_factors,
        strengths=assessment.strengths,
    )
