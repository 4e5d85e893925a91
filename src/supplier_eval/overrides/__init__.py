"""Buyer override layer: durable manual scores and auto/effective variance."""

from supplier_eval.overrides.merge import (
    merge_preserving_overrides,
    remove_override,
    set_override,
    validate_override,
)
from supplier_eval.overrides.variance import (
    classify_variance,
    compute_variance,
    is_must_have_violation,
)

__all__ = [
    "classify_variance",
    "compute_variance",
    "is_must_have_violation",
    "merge_preserving_overrides",
    "remove_override",
    "set_override",
    "validate_override",
]
