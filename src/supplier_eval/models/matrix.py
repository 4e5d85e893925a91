"""Scoring matrix snapshot models.

A ScoringMatrix is always a complete rectangle: every requirement row holds
exactly one cell per supplier with a submitted response, in supplier order.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from supplier_eval.models.opportunity import Importance, RequirementCategory
from supplier_eval.models.scores import RequirementScore, ScoreLevel


class MatrixCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    supplier_name: str
    score: RequirementScore
    effective_score: float = Field(..., ge=0.0, le=100.0)
    level: ScoreLevel = Field(..., description="Level of the effective score")


class MatrixRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    requirement_id: str
    title: str
    description: str
    reference_key: str
    category: RequirementCategory
    importance: Importance
    weight: float
    cells: list[MatrixCell]

    @property
    def must_have(self) -> bool:
        return self.importance == Importance.MUST_HAVE

    def cell_for(self, supplier_id: str) -> MatrixCell | None:
        for cell in self.cells:
            if cell.supplier_id == supplier_id:
                return cell
        return None


class SupplierSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    supplier_name: str
    overall_score: float
    weighted_score: float
    rank: int = Field(..., ge=1)
    pass_count: int
    partial_count: int
    fail_count: int
    missing_count: int
    differentiator_count: int = Field(
        ..., description="Requirements where this supplier strictly outscores every other"
    )
    must_have_total: int
    must_have_passed: int
    must_have_failed: int
    category_scores: dict[RequirementCategory, float]


class MatrixMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_requirements: int
    total_suppliers: int
    generated_at: datetime
    version: int = Field(..., ge=1)


class ScoringMatrix(BaseModel):
    model_config = ConfigDict(frozen=True)

    opportunity_id: str
    requirements: list[MatrixRow]
    supplier_summaries: list[SupplierSummary]
    meta: MatrixMeta

    @property
    def cell_count(self) -> int:
        return sum(len(row.cells) for row in self.requirements)


class MatrixFilters(BaseModel):
    """View filters applied after a matrix is built or served from cache."""

    model_config = ConfigDict(frozen=True)

    category: RequirementCategory | None = None
    only_differentiators: bool = False
    only_failed_or_partial: bool = False
    search_term: str | None = None
    supplier_ids: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.category is None
            and not self.only_differentiators
            and not self.only_failed_or_partial
            and self.search_term is None
            and self.supplier_ids is None
        )
