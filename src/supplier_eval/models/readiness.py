"""Readiness classification models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from supplier_eval.models.extraction import (
    ComplianceReport,
    DemoSummary,
    MandatoryStatus,
    PricingSummary,
    RequirementsCoverage,
    RiskFlag,
    SupplierExtraction,
)


class ReadinessIndicator(StrEnum):
    READY = "READY"
    CONDITIONAL = "CONDITIONAL"
    NOT_READY = "NOT_READY"


class ReadinessInput(BaseModel):
    """Signals the classifier consumes. Any section may be unknown (None)."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    mandatory_status: list[MandatoryStatus] | None = None
    compliance: ComplianceReport | None = None
    risks: list[RiskFlag] | None = None
    pricing: PricingSummary | None = None
    coverage: RequirementsCoverage | None = None
    demo: DemoSummary | None = None

    @classmethod
    def from_extraction(cls, supplier_id: str, extraction: SupplierExtraction) -> ReadinessInput:
        return cls(
            supplier_id=supplier_id,
            mandatory_status=extraction.mandatory_status,
            compliance=extraction.compliance,
            risks=extraction.risks,
            pricing=extraction.pricing,
            coverage=extraction.coverage,
            demo=extraction.demo,
        )


class ReadinessResult(BaseModel):
    """Readiness judgment for one (opportunity, supplier). Replaced wholesale on rerun."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    indicator: ReadinessIndicator
    score: float = Field(..., ge=0.0, le=100.0)
    rationale: str
    critical_issues: list[str] = Field(default_factory=list)
    conditional_factors: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


class BatchReadinessResult(BaseModel):
    """Readiness for every supplier of an opportunity; failures are per supplier."""

    model_config = ConfigDict(frozen=True)

    opportunity_id: str
    results: dict[str, ReadinessResult]
    errors: dict[str, str] = Field(
        default_factory=dict, description="supplier_id -> error code for failed suppliers"
    )
