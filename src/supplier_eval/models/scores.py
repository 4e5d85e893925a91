"""Requirement-level score models and the evaluation workspace view.

A RequirementScore has two independently owned parts:
- auto_score: written only by the auto-scorer (matrix build, regeneration)
- buyer_override: written only by the override layer, cleared only explicitly

Derived values (effective score, variance, must-have violation) are computed
on read and never stored.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ScoreLevel(StrEnum):
    PASS = "pass"
    PARTIAL = "partial"
    FAIL = "fail"
    NOT_APPLICABLE = "not_applicable"
    MISSING = "missing"
    ERROR = "error"


class ScoringMethod(StrEnum):
    COVERAGE_FINDING = "coverage_finding"
    NUMERIC = "numeric"
    WEIGHTED = "weighted"
    PASS_FAIL = "pass_fail"
    QUALITATIVE_HEURISTIC = "qualitative_heuristic"
    SEMANTIC = "semantic"
    MISSING = "missing"
    ERROR = "error"


class VarianceLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AutoScore(BaseModel):
    """Machine-computed score for one requirement."""

    model_config = ConfigDict(frozen=True)

    raw_score: float = Field(..., ge=0.0, le=100.0)
    rationale: str
    score_level: ScoreLevel
    method: ScoringMethod
    failed_must_have: bool = False


class BuyerOverride(BaseModel):
    """Reviewer-supplied replacement score with its audit metadata."""

    model_config = ConfigDict(frozen=True)

    override_score: float = Field(..., ge=0.0, le=100.0)
    override_reason: str = Field(..., min_length=1)
    overridden_at: datetime
    overridden_by_user_id: str


class RequirementScore(BaseModel):
    """Score for one requirement owned by one (opportunity, supplier) pair."""

    model_config = ConfigDict(frozen=True)

    requirement_id: str
    auto_score: AutoScore
    buyer_override: BuyerOverride | None = None

    @property
    def effective_score(self) -> float:
        """Override score when present, else the auto raw score."""
        if self.buyer_override is not None:
            return self.buyer_override.override_score
        return self.auto_score.raw_score

    @property
    def is_overridden(self) -> bool:
        return self.buyer_override is not None


class ScoreSet(BaseModel):
    """Versioned RequirementScore list for one (opportunity, supplier) pair.

    ``version`` increases by one on every write; writers pass the version they
    read so a lost race surfaces as a concurrency conflict.
    """

    model_config = ConfigDict(frozen=True)

    opportunity_id: str
    supplier_id: str
    scores: list[RequirementScore]
    version: int = Field(..., ge=1)
    updated_at: datetime

    def get(self, requirement_id: str) -> RequirementScore | None:
        for score in self.scores:
            if score.requirement_id == requirement_id:
                return score
        return None


class EvaluatorComment(BaseModel):
    model_config = ConfigDict(frozen=True)

    comment_id: str
    supplier_id: str
    requirement_id: str
    text: str = Field(..., min_length=1)
    user_id: str
    created_at: datetime


class ScoringItem(BaseModel):
    """Evaluation workspace row: a RequirementScore joined with requirement metadata."""

    model_config = ConfigDict(frozen=True)

    requirement_id: str
    requirement_title: str
    supplier_response_text: str | None
    auto_score: float
    override_score: float | None
    override_justification: str | None
    effective_score: float
    variance: float
    variance_level: VarianceLevel
    must_have: bool
    must_have_violation: bool
    score_level: ScoreLevel
    comments: list[EvaluatorComment] = Field(default_factory=list)


class EvaluationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_requirements: int
    average_auto_score: float
    average_effective_score: float
    weighted_auto_score: float
    weighted_effective_score: float
    override_count: int
    comment_count: int
    must_have_failures: int
    missing_responses: int
    average_variance: float
    max_variance: float
    high_variance_count: int


class EvaluationWorkspace(BaseModel):
    model_config = ConfigDict(frozen=True)

    opportunity_id: str
    supplier_id: str
    supplier_name: str
    score_set_version: int = Field(
        ..., ge=0, description="Version to pass back as expected_version (0 = never written)"
    )
    items: list[ScoringItem]
    summary: EvaluationSummary
