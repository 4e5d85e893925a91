"""Opportunity-side records consumed from the requirement and response providers."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from supplier_eval.models.extraction import SupplierExtraction


class RequirementCategory(StrEnum):
    FUNCTIONAL = "functional"
    COMMERCIAL = "commercial"
    LEGAL = "legal"
    SECURITY = "security"
    OPERATIONAL = "operational"
    OTHER = "other"


class Importance(StrEnum):
    MUST_HAVE = "must_have"
    SHOULD_HAVE = "should_have"
    NICE_TO_HAVE = "nice_to_have"


class ScoringType(StrEnum):
    """How a structured answer to a requirement is auto-scored."""

    NUMERIC = "numeric"
    WEIGHTED = "weighted"
    PASS_FAIL = "pass_fail"
    QUALITATIVE = "qualitative"


class Requirement(BaseModel):
    """One evaluable requirement of an opportunity, in template order."""

    model_config = ConfigDict(frozen=True)

    requirement_id: str = Field(..., min_length=1)
    title: str
    description: str = ""
    reference_key: str = ""
    category: RequirementCategory = RequirementCategory.OTHER
    importance: Importance = Importance.SHOULD_HAVE
    weight: float = Field(default=1.0, ge=0.0, description="Relative weight within the matrix")
    scoring_type: ScoringType = ScoringType.QUALITATIVE

    @property
    def must_have(self) -> bool:
        return self.importance == Importance.MUST_HAVE


class EvaluationCriterion(BaseModel):
    """Buyer-authored evaluation matrix criterion."""

    model_config = ConfigDict(frozen=True)

    criterion_id: str
    label: str = ""
    weight: float


class SupplierResponse(BaseModel):
    """A supplier's response to an opportunity, with its extracted data."""

    model_config = ConfigDict(frozen=True)

    supplier_id: str = Field(..., min_length=1)
    supplier_name: str = ""
    submitted: bool = False
    submitted_at: datetime | None = None
    extraction: SupplierExtraction = Field(default_factory=SupplierExtraction)

    @property
    def display_name(self) -> str:
        return self.supplier_name or self.supplier_id
