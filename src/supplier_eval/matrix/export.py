"""Tabular export of a (possibly filtered) scoring matrix.

Long format: a header row, then one row per requirement x supplier cell in
matrix order (requirements in template order, suppliers by id). Every field is
quoted and numbers use fixed two-decimal formatting, so the same input always
yields byte-identical output.
"""

from __future__ import annotations

import csv
import io

from supplier_eval.models.matrix import ScoringMatrix
from supplier_eval.overrides.variance import compute_variance

EXPORT_COLUMNS: tuple[str, ...] = (
    "requirement_id",
    "reference_key",
    "title",
    "category",
    "importance",
    "supplier_id",
    "supplier_name",
    "auto_score",
    "override_score",
    "effective_score",
    "variance",
    "level",
    "scoring_method",
    "override_reason",
)


def _fmt(value: float | None) -> str:
    return "" if value is None else f"{value:.2f}"


def export_matrix_csv(matrix: ScoringMatrix) -> str:
    """Flatten a scoring matrix to CSV text.

    Args:
        matrix: Scoring matrix (filters already applied).

    Returns:
        CSV text with ``\\n`` line endings.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for row in matrix.requirements:
        for cell in row.cells:
            override = cell.score.buyer_override
            writer.writerow(
                (
                    row.requirement_id,
                    row.reference_key,
                    row.title,
                    row.category.value,
                    row.importance.value,
                    cell.supplier_id,
                    cell.supplier_name,
                    _fmt(cell.score.auto_score.raw_score),
                    _fmt(override.override_score if override else None),
                    _fmt(cell.effective_score),
                    _fmt(compute_variance(cell.score)),
                    cell.level.value,
                    cell.score.auto_score.method.value,
                    override.override_reason if override else "",
                )
            )
    return buffer.getvalue()
