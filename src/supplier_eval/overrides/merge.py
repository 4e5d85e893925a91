"""Override-preserving operations on RequirementScore lists.

Regeneration is a two-step pipeline: compute fresh auto scores keyed by
requirement id, then fold the previous buyer overrides on top with
``merge_preserving_overrides``. An override is only ever removed by
``clear_override``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from supplier_eval.errors import NotFoundError, ValidationError
from supplier_eval.models.scores import BuyerOverride, RequirementScore

logger = logging.getLogger(__name__)


def merge_preserving_overrides(
    previous: Sequence[RequirementScore],
    fresh: Sequence[RequirementScore],
) -> list[RequirementScore]:
    """Fold previous buyer overrides onto freshly computed auto scores.

    The result follows ``fresh`` order. Each entry takes its auto score from
    ``fresh`` and its buyer override, untouched, from ``previous``. Overridden
    entries whose requirement no longer appears in ``fresh`` are carried
    forward unchanged at the end, so no override is dropped.

    Args:
        previous: Stored scores (may carry overrides).
        fresh: Newly computed scores (auto scores only; overrides ignored).

    Returns:
        Merged score list.
    """
    overrides = {
        s.requirement_id: s.buyer_override for s in previous if s.buyer_override is not None
    }
    merged = [
        RequirementScore(
            requirement_id=s.requirement_id,
            auto_score=s.auto_score,
            buyer_override=overrides.get(s.requirement_id),
        )
        for s in fresh
    ]
    fresh_ids = {s.requirement_id for s in fresh}
    orphans = [
        s for s in previous if s.buyer_override is not None and s.requirement_id not in fresh_ids
    ]
    if orphans:
        logger.info(
            "Carrying forward %d overridden scores for requirements no longer scored: %s",
            len(orphans),
            [s.requirement_id for s in orphans],
        )
    return merged + orphans


def validate_override(score: float, reason: str) -> None:
    """Validate an override before it is written.

    Raises:
        ValidationError: Score outside [0, 100] or a blank reason.
    """
    if not 0 <= score <= 100:
        raise ValidationError(
            f"Override score must be between 0 and 100, got {score}",
            details={"score": score},
        )
    if not reason or not reason.strip():
        raise ValidationError("Override justification is required")


def _replace(
    scores: Sequence[RequirementScore], requirement_id: str, updated: RequirementScore
) -> list[RequirementScore]:
    return [updated if s.requirement_id == requirement_id else s for s in scores]


def _find(scores: Sequence[RequirementScore], requirement_id: str) -> RequirementScore:
    for s in scores:
        if s.requirement_id == requirement_id:
            return s
    raise NotFoundError(
        f"No score for requirement {requirement_id}",
        details={"requirement_id": requirement_id},
    )


def set_override(
    scores: Sequence[RequirementScore],
    requirement_id: str,
    *,
    score: float,
    reason: str,
    actor_id: str,
    now: datetime,
) -> tuple[list[RequirementScore], RequirementScore]:
    """Write a buyer override onto one requirement, leaving its auto score alone.

    Returns:
        Tuple of (updated list, updated RequirementScore).

    Raises:
        ValidationError: Score out of range or blank reason.
        NotFoundError: Requirement not in the list.
    """
    validate_override(score, reason)
    current = _find(scores, requirement_id)
    updated = current.model_copy(
        update={
            "buyer_override": BuyerOverride(
                override_score=score,
                override_reason=reason.strip(),
                overridden_at=now,
                overridden_by_user_id=actor_id,
            )
        }
    )
    return _replace(scores, requirement_id, updated), updated


def remove_override(
    scores: Sequence[RequirementScore], requirement_id: str
) -> tuple[list[RequirementScore], RequirementScore]:
    """Clear the buyer override of one requirement. Clearing an absent override is a no-op.

    Raises:
        NotFoundError: Requirement not in the list.
    """
    current = _find(scores, requirement_id)
    updated = current.model_copy(update={"buyer_override": None})
    return _replace(scores, requirement_id, updated), updated
