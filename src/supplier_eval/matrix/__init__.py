"""Requirement-level scoring matrix: build, cache policy, view filters and export."""

from supplier_eval.matrix.builder import build_matrix, effective_level
from supplier_eval.matrix.cache import is_stale
from supplier_eval.matrix.export import EXPORT_COLUMNS, export_matrix_csv
from supplier_eval.matrix.filters import apply_filters, validate_filters

__all__ = [
    "EXPORT_COLUMNS",
    "apply_filters",
    "build_matrix",
    "effective_level",
    "export_matrix_csv",
    "is_stale",
    "validate_filters",
]
