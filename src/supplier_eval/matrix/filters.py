"""Scoring matrix view filters.

Filtering is a pure transform over a built or cached matrix. It returns a new
ScoringMatrix and never touches the cached snapshot, its version or its
timestamp.
"""

from __future__ import annotations

from supplier_eval.errors import ValidationError
from supplier_eval.models.matrix import MatrixFilters, MatrixRow, ScoringMatrix
from supplier_eval.models.scores import ScoreLevel

_FAILED_OR_PARTIAL = frozenset(
    {ScoreLevel.FAIL, ScoreLevel.PARTIAL, ScoreLevel.MISSING, ScoreLevel.ERROR}
)


def validate_filters(filters: MatrixFilters, matrix: ScoringMatrix) -> None:
    """Reject empty or contradictory filter combinations.

    Raises:
        ValidationError: Blank search term, empty or unknown supplier selection,
            or differentiators requested over fewer than two suppliers.
    """
    if filters.search_term is not None and not filters.search_term.strip():
        raise ValidationError("search_term must not be blank")

    if filters.supplier_ids is not None:
        if not filters.supplier_ids:
            raise ValidationError("supplier_ids must not be empty when provided")
        known = {s.supplier_id for s in matrix.supplier_summaries}
        unknown = sorted(set(filters.supplier_ids) - known)
        if unknown:
            raise ValidationError(
                "supplier_ids contains suppliers not present in the matrix",
                details={"unknown_supplier_ids": unknown},
            )
        if filters.only_differentiators and len(set(filters.supplier_ids)) < 2:
            raise ValidationError(
                "only_differentiators needs at least two suppliers to compare"
            )


def _is_differentiator(row: MatrixRow) -> bool:
    return len({cell.level for cell in row.cells}) > 1


def _is_failed_or_partial(row: MatrixRow) -> bool:
    return any(cell.level in _FAILED_OR_PARTIAL for cell in row.cells)


def _matches_search(row: MatrixRow, term: str) -> bool:
    term = term.lower()
    return (
        term in row.title.lower()
        or term in row.description.lower()
        or term in row.reference_key.lower()
    )


def apply_filters(matrix: ScoringMatrix, filters: MatrixFilters | None) -> ScoringMatrix:
    """Return a filtered copy of ``matrix``.

    Supplier selection narrows cells and summaries first; the row predicates
    (differentiators, failed or partial) then look only at the selected
    suppliers. ``meta.total_requirements`` and ``meta.total_suppliers`` describe
    the filtered view; ``generated_at`` and ``version`` are unchanged.

    Raises:
        ValidationError: See ``validate_filters``.
    """
    if filters is None or filters.is_empty:
        return matrix
    validate_filters(filters, matrix)

    rows = list(matrix.requirements)
    summaries = list(matrix.supplier_summaries)

    if filters.supplier_ids is not None:
        selected = set(filters.supplier_ids)
        rows = [
            row.model_copy(update={"cells": [c for c in row.cells if c.supplier_id in selected]})
            for row in rows
        ]
        summaries = [s for s in summaries if s.supplier_id in selected]

    if filters.category is not None:
        rows = [row for row in rows if row.category == filters.category]
    if filters.only_differentiators:
        rows = [row for row in rows if _is_differentiator(row)]
    if filters.only_failed_or_partial:
        rows = [row for row in rows if _is_failed_or_partial(row)]
    if filters.search_term is not None:
        term = filters.search_term.strip()
        rows = [row for row in rows if _matches_search(row, term)]

    meta = matrix.meta.model_copy(
        update={"total_requirements": len(rows), "total_suppliers": len(summaries)}
    )
    return matrix.model_copy(
        update={"requirements": rows, "supplier_summaries": summaries, "meta": meta}
    )
