"""Scoring matrix staleness policy.

``is_stale`` is the single predicate deciding whether a cached snapshot may be
served. ``force_recompute`` is handled by the caller and never folded in here.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from supplier_eval.models.matrix import ScoringMatrix


def is_stale(
    snapshot: ScoringMatrix | None,
    *,
    now: datetime,
    ttl_seconds: int,
    last_write_at: datetime | None = None,
) -> bool:
    """Decide whether a cached matrix snapshot is out of date.

    A snapshot is stale when it does not exist, when it is at least
    ``ttl_seconds`` old, or when score writes (overrides, regeneration) for the
    opportunity happened after it was generated.

    Args:
        snapshot: Cached snapshot, or None.
        now: Current time.
        ttl_seconds: Staleness window.
        last_write_at: Time of the latest score write for the opportunity.

    Returns:
        True if the snapshot must be recomputed.
    """
    if snapshot is None:
        return True
    generated_at = snapshot.meta.generated_at
    if now - generated_at >= timedelta(seconds=ttl_seconds):
        return True
    return last_write_at is not None and last_write_at > generated_at
