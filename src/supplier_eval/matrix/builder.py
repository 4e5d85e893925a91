"""Requirement-level scoring matrix builder.

Builds the requirement x supplier grid for one opportunity:
1. Take each supplier's stored scores (auto score and override) as persisted
2. Auto-score the requirements no stored score covers (never written here)
3. Derive effective score and level per cell
4. Aggregate per-supplier summaries and rank them

Aggregates exclude NOT_APPLICABLE cells; MISSING and ERROR cells count as 0.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime

from supplier_eval.config import EngineConfig
from supplier_eval.errors import NoDataError
from supplier_eval.models.matrix import (
    MatrixCell,
    MatrixMeta,
    MatrixRow,
    ScoringMatrix,
    SupplierSummary,
)
from supplier_eval.models.opportunity import Requirement, RequirementCategory, SupplierResponse
from supplier_eval.models.scores import RequirementScore, ScoreLevel
from supplier_eval.overrides.variance import is_must_have_violation
from supplier_eval.scoring.auto_scorer import AutoScorer, level_for_score

logger = logging.getLogger(__name__)

_SUMMARY_PRECISION = 2


def effective_level(score: RequirementScore, config: EngineConfig) -> ScoreLevel:
    """Level of the effective score: the override's band when overridden, else the auto level."""
    if score.buyer_override is None:
        return score.auto_score.score_level
    return level_for_score(score.buyer_override.override_score, config)


def make_cell(
    response: SupplierResponse, score: RequirementScore, config: EngineConfig
) -> MatrixCell:
    return MatrixCell(
        supplier_id=response.supplier_id,
        supplier_name=response.display_name,
        score=score,
        effective_score=score.effective_score,
        level=effective_level(score, config),
    )


def _supplier_scores(
    requirements: Sequence[Requirement],
    response: SupplierResponse,
    scorer: AutoScorer,
    stored: Sequence[RequirementScore] | None,
) -> dict[str, RequirementScore]:
    """Stored scores as persisted; fresh auto scores only for requirements they do not cover."""
    by_id = {s.requirement_id: s for s in stored or []}
    uncovered = [r for r in requirements if r.requirement_id not in by_id]
    if uncovered:
        by_id.update(
            (s.requirement_id, s) for s in scorer.score_supplier(uncovered, response.extraction)
        )
    return by_id


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _summarize(
    supplier: SupplierResponse,
    rows: Sequence[MatrixRow],
    config: EngineConfig,
) -> SupplierSummary:
    """Aggregate one supplier's cells. The rank is assigned later by rank_summaries."""
    applicable: list[tuple[MatrixRow, MatrixCell]] = []
    for row in rows:
        cell = row.cell_for(supplier.supplier_id)
        if cell is not None and cell.level != ScoreLevel.NOT_APPLICABLE:
            applicable.append((row, cell))

    weighted_sum = 0.0
    weight_total = 0.0
    by_category: dict[RequirementCategory, list[float]] = {}
    for row, cell in applicable:
        w = row.weight * config.category_weight(row.category.value)
        weighted_sum += cell.effective_score * w
        weight_total += w
        by_category.setdefault(row.category, []).append(cell.effective_score)

    levels = [cell.level for _, cell in applicable]
    must_haves = [cell for row, cell in applicable if row.must_have]
    must_have_failed = sum(
        1 for cell in must_haves if is_must_have_violation(True, cell.effective_score, config)
    )
    overall = _mean([cell.effective_score for _, cell in applicable])
    weighted = weighted_sum / weight_total if weight_total > 0 else 0.0

    return SupplierSummary(
        supplier_id=supplier.supplier_id,
        supplier_name=supplier.display_name,
        overall_score=round(overall, _SUMMARY_PRECISION),
        weighted_score=round(weighted, _SUMMARY_PRECISION),
        rank=1,
        pass_count=levels.count(ScoreLevel.PASS),
        partial_count=levels.count(ScoreLevel.PARTIAL),
        fail_count=levels.count(ScoreLevel.FAIL),
        missing_count=levels.count(ScoreLevel.MISSING) + levels.count(ScoreLevel.ERROR),
        differentiator_count=_differentiator_count(supplier.supplier_id, rows),
        must_have_total=len(must_haves),
        must_have_passed=len(must_haves) - must_have_failed,
        must_have_failed=must_have_failed,
        category_scores={
            category: round(_mean(scores), _SUMMARY_PRECISION)
            for category, scores in sorted(by_category.items(), key=lambda kv: kv[0].value)
        },
    )


def _differentiator_count(supplier_id: str, rows: Sequence[MatrixRow]) -> int:
    """Requirements where this supplier's effective score beats every other supplier's."""
    count = 0
    for row in rows:
        own = row.cell_for(supplier_id)
        others = [c.effective_score for c in row.cells if c.supplier_id != supplier_id]
        if own is not None and others and own.effective_score > max(others):
            count += 1
    return count


def rank_summaries(summaries: Sequence[SupplierSummary]) -> list[SupplierSummary]:
    """Order by descending weighted score, ties by supplier id, and assign 1-based ranks."""
    ordered = sorted(summaries, key=lambda s: (-s.weighted_score, s.supplier_id))
    return [s.model_copy(update={"rank": i}) for i, s in enumerate(ordered, start=1)]


def build_matrix(
    opportunity_id: str,
    requirements: Sequence[Requirement],
    responses: Sequence[SupplierResponse],
    *,
    scorer: AutoScorer,
    config: EngineConfig,
    generated_at: datetime,
    version: int,
    stored_scores: Mapping[str, Sequence[RequirementScore]] | None = None,
) -> ScoringMatrix:
    """Build a complete scoring matrix snapshot.

    Args:
        opportunity_id: Opportunity being scored.
        requirements: Requirement definitions in template order.
        responses: Submitted supplier responses.
        scorer: Auto-scorer for fresh cell scores.
        config: Engine configuration.
        generated_at: Snapshot timestamp.
        version: Snapshot version to stamp (previous version + 1).
        stored_scores: Persisted score lists per supplier id; these win over
            fresh auto scores.

    Returns:
        ScoringMatrix with exactly len(requirements) x len(responses) cells.

    Raises:
        NoDataError: No submitted responses or no requirements.
    """
    if not responses:
        raise NoDataError(
            f"Opportunity {opportunity_id} has no submitted supplier responses",
            details={"opportunity_id": opportunity_id},
        )
    if not requirements:
        raise NoDataError(
            f"Opportunity {opportunity_id} has no requirements defined",
            details={"opportunity_id": opportunity_id},
        )

    suppliers = sorted(responses, key=lambda r: r.supplier_id)
    stored_scores = stored_scores or {}
    per_supplier = {
        r.supplier_id: _supplier_scores(requirements, r, scorer, stored_scores.get(r.supplier_id))
        for r in suppliers
    }

    rows = [
        MatrixRow(
            requirement_id=req.requirement_id,
            title=req.title,
            description=req.description,
            reference_key=req.reference_key,
            category=req.category,
            importance=req.importance,
            weight=req.weight,
            cells=[
                make_cell(r, per_supplier[r.supplier_id][req.requirement_id], config)
                for r in suppliers
            ],
        )
        for req in requirements
    ]

    summaries = rank_summaries([_summarize(r, rows, config) for r in suppliers])

    matrix = ScoringMatrix(
        opportunity_id=opportunity_id,
        requirements=rows,
        supplier_summaries=summaries,
        meta=MatrixMeta(
            total_requirements=len(rows),
            total_suppliers=len(suppliers),
            generated_at=generated_at,
            version=version,
        ),
    )
    logger.info(
        "Built scoring matrix for opportunity %s: %d requirements x %d suppliers (v%d)",
        opportunity_id,
        len(rows),
        len(suppliers),
        version,
    )
    return matrix
