"""Extracted proposal data supplied by the upstream extraction collaborator.

Each section of a supplier's extraction is optional: None means the section
is unknown (never extracted, or malformed and discarded by
``parse_extraction``). Scoring code must treat None as "unknown", never as
"zero".
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    """Severity used by risk flags, compliance findings and hidden fees."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


HIGH_SEVERITIES: frozenset[Severity] = frozenset({Severity.HIGH, Severity.CRITICAL})


class CoverageStatus(StrEnum):
    """How fully a supplier's response addresses one requirement."""

    FULLY_ADDRESSED = "fully_addressed"
    PARTIALLY_ADDRESSED = "partially_addressed"
    NOT_ADDRESSED = "not_addressed"
    NOT_APPLICABLE = "not_applicable"


class MandatoryLevel(StrEnum):
    MET = "MET"
    PARTIAL = "PARTIAL"
    NOT_MET = "NOT_MET"


class DemoRating(StrEnum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class HiddenFee(_Section):
    description: str
    severity: Severity = Severity.MEDIUM
    amount: float | None = None


class PricingSummary(_Section):
    """Pricing breakdown. ``total_cost`` wins over ``estimated_total`` when both exist."""

    total_cost: float | None = Field(default=None, ge=0.0)
    estimated_total: float | None = Field(default=None, ge=0.0)
    currency: str | None = None
    hidden_fees: list[HiddenFee] = Field(default_factory=list)

    @property
    def effective_total(self) -> float | None:
        if self.total_cost is not None:
            return self.total_cost
        return self.estimated_total


class CoverageFinding(_Section):
    """Per-requirement coverage finding. Matched by requirement id or reference key."""

    requirement_id: str | None = None
    reference_key: str | None = None
    status: CoverageStatus
    notes: str | None = None


class RequirementsCoverage(_Section):
    coverage_pct: float | None = Field(default=None, ge=0.0, le=100.0)
    findings: list[CoverageFinding] = Field(default_factory=list)


class TechnicalClaim(_Section):
    text: str
    category: str | None = None


class RiskFlag(_Section):
    description: str
    severity: Severity


class Differentiator(_Section):
    text: str


class Assumption(_Section):
    text: str


class DemoSummary(_Section):
    capabilities: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    overall_rating: DemoRating | None = None


class MandatoryStatus(_Section):
    requirement_id: str
    title: str = ""
    status: MandatoryLevel
    critical: bool = False


class ComplianceFinding(_Section):
    finding_id: str
    title: str
    severity: Severity
    resolved: bool = False


class ComplianceReport(_Section):
    score: float | None = Field(default=None, ge=0.0, le=100.0)
    findings: list[ComplianceFinding] = Field(default_factory=list)


class StructuredAnswer(_Section):
    """A supplier's free-text answer to one requirement question."""

    requirement_id: str
    text: str


class SupplierExtraction(BaseModel):
    """Structured facts extracted from one supplier's proposal."""

    model_config = ConfigDict(frozen=True)

    pricing: PricingSummary | None = None
    coverage: RequirementsCoverage | None = None
    technical_claims: list[TechnicalClaim] | None = None
    risks: list[RiskFlag] | None = None
    differentiators: list[Differentiator] | None = None
    assumptions: list[Assumption] | None = None
    demo: DemoSummary | None = None
    mandatory_status: list[MandatoryStatus] | None = None
    compliance: ComplianceReport | None = None
    answers: list[StructuredAnswer] = Field(default_factory=list)

    def answer_for(self, requirement_id: str) -> StructuredAnswer | None:
        for answer in self.answers:
            if answer.requirement_id == requirement_id:
                return answer
        return None

    def finding_for(self, requirement_id: str, reference_key: str | None) -> CoverageFinding | None:
        if self.coverage is None:
            return None
        for finding in self.coverage.findings:
            if finding.requirement_id == requirement_id:
                return finding
            if reference_key and finding.reference_key == reference_key:
                return finding
        return None


_SECTION_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "pricing": TypeAdapter(PricingSummary),
    "coverage": TypeAdapter(RequirementsCoverage),
    "technical_claims": TypeAdapter(list[TechnicalClaim]),
    "risks": TypeAdapter(list[RiskFlag]),
    "differentiators": TypeAdapter(list[Differentiator]),
    "assumptions": TypeAdapter(list[Assumption]),
    "demo": TypeAdapter(DemoSummary),
    "mandatory_status": TypeAdapter(list[MandatoryStatus]),
    "compliance": TypeAdapter(ComplianceReport),
    "answers": TypeAdapter(list[StructuredAnswer]),
}


def parse_extraction(raw: Mapping[str, Any] | None, *, supplier_id: str = "") -> SupplierExtraction:
    """Parse raw extraction data, degrading malformed sections to unknown.

    Each section is validated on its own. A section that fails validation is
    dropped (None, or an empty answer list) and logged; it never aborts the
    rest of the parse.

    Args:
        raw: Raw extraction mapping from the extraction provider.
        supplier_id: Used for log context only.

    Returns:
        SupplierExtraction with every well-formed section populated.
    """
    if raw is None:
        return SupplierExtraction()
    if not isinstance(raw, Mapping):
        logger.warning(
            "Extraction for supplier %s is not a mapping (%s); treating as unknown",
            supplier_id,
            type(raw).__name__,
        )
        return SupplierExtraction()

    parsed: dict[str, Any] = {}
    for section, adapter in _SECTION_ADAPTERS.items():
        value = raw.get(section)
        if value is None:
            continue
        try:
            parsed[section] = adapter.validate_python(value)
        except PydanticValidationError as exc:
            logger.warning(
                "Malformed extraction section %r for supplier %s (%d errors); treating as unknown",
                section,
                supplier_id,
                exc.error_count(),
            )
    return SupplierExtraction(**parsed)
