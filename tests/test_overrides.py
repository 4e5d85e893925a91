"""Tests for buyer override operations and variance derivations."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from supplier_eval.config import EngineConfig
from supplier_eval.errors import NotFoundError, ValidationError
from supplier_eval.models.scores import (
    AutoScore,
    BuyerOverride,
    RequirementScore,
    ScoreLevel,
    ScoringMethod,
    VarianceLevel,
)
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

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


def _make_score(
    requirement_id: str, raw: float, override: float | None = None
) -> RequirementScore:
    return RequirementScore(
        requirement_id=requirement_id,
        auto_score=AutoScore(
            raw_score=raw,
            rationale="test",
            score_level=ScoreLevel.PARTIAL,
            method=ScoringMethod.NUMERIC,
        ),
        buyer_override=(
            BuyerOverride(
                override_score=override,
                override_reason="Reviewed on site",
                overridden_at=NOW,
                overridden_by_user_id="buyer-1",
            )
            if override is not None
            else None
        ),
    )


class TestMergePreservingOverrides:
    """Regeneration never drops a buyer override."""

    def test_override_survives_new_auto_score(self) -> None:
        previous = [_make_score("R1", 40.0, override=90.0), _make_score("R2", 10.0)]
        fresh = [_make_score("R1", 45.0), _make_score("R2", 20.0)]

        merged = merge_preserving_overrides(previous, fresh)

        assert merged[0].auto_score.raw_score == 45.0
        assert merged[0].buyer_override == previous[0].buyer_override
        assert merged[0].effective_score == 90.0
        assert merged[1].buyer_override is None
        assert merged[1].auto_score.raw_score == 20.0

    def test_follows_fresh_order(self) -> None:
        previous = [_make_score("R1", 1.0), _make_score("R2", 2.0)]
        fresh = [_make_score("R2", 3.0), _make_score("R1", 4.0)]

        merged = merge_preserving_overrides(previous, fresh)

        assert [s.requirement_id for s in merged] == ["R2", "R1"]

    def test_orphaned_override_carried_forward(self) -> None:
        previous = [_make_score("R1", 40.0), _make_score("R9", 10.0, override=70.0)]
        fresh = [_make_score("R1", 50.0)]

        merged = merge_preserving_overrides(previous, fresh)

        assert [s.requirement_id for s in merged] == ["R1", "R9"]
        assert merged[1] == previous[1]

    def test_fresh_overrides_ignored(self) -> None:
        fresh = [_make_score("R1", 50.0, override=5.0)]

        merged = merge_preserving_overrides([], fresh)

        assert merged[0].buyer_override is None


class TestSetAndRemoveOverride:
    def test_set_override_keeps_auto_score(self) -> None:
        scores = [_make_score("R1", 40.0), _make_score("R2", 60.0)]

        updated_list, updated = set_override(
            scores, "R1", score=90.0, reason="  Strong demo  ", actor_id="buyer-1", now=NOW
        )

        assert updated.auto_score.raw_score == 40.0
        assert updated.buyer_override is not None
        assert updated.buyer_override.override_score == 90.0
        assert updated.buyer_override.override_reason == "Strong demo"
        assert updated.buyer_override.overridden_by_user_id == "buyer-1"
        assert updated_list[0] == updated
        assert updated_list[1] == scores[1]

    @pytest.mark.parametrize("score", [-0.1, 100.5])
    def test_out_of_range_rejected(self, score: float) -> None:
        with pytest.raises(ValidationError):
            validate_override(score, "reason")

    @pytest.mark.parametrize("score", [0.0, 100.0])
    def test_range_bounds_accepted(self, score: float) -> None:
        validate_override(score, "reason")

    @pytest.mark.parametrize("reason", ["", "   "])
    def test_blank_reason_rejected(self, reason: str) -> None:
        with pytest.raises(ValidationError, match="justification"):
            set_override(
                [_make_score("R1", 40.0)], "R1", score=50.0, reason=reason, actor_id="b", now=NOW
            )

    def test_unknown_requirement(self) -> None:
        with pytest.raises(NotFoundError):
            set_override(
                [_make_score("R1", 40.0)], "R7", score=50.0, reason="x", actor_id="b", now=NOW
            )

    def test_remove_override(self) -> None:
        scores = [_make_score("R1", 40.0, override=90.0)]

        updated_list, updated = remove_override(scores, "R1")

        assert updated.buyer_override is None
        assert updated.effective_score == 40.0
        assert updated_list == [updated]

    def test_remove_absent_override_is_noop(self) -> None:
        scores = [_make_score("R1", 40.0)]

        updated_list, updated = remove_override(scores, "R1")

        assert updated == scores[0]
        assert updated_list == scores


class TestVariance:
    def test_no_override_has_zero_variance(self) -> None:
        assert compute_variance(_make_score("R1", 40.0)) == 0.0

    def test_variance_is_absolute_difference(self) -> None:
        assert compute_variance(_make_score("R1", 40.0, override=90.0)) == 50.0
        assert compute_variance(_make_score("R1", 90.0, override=40.0)) == 50.0

    @pytest.mark.parametrize(
        ("variance", "level"),
        [
            (0.0, VarianceLevel.LOW),
            (9.99, VarianceLevel.LOW),
            (10.0, VarianceLevel.MEDIUM),
            (25.0, VarianceLevel.MEDIUM),
            (25.01, VarianceLevel.HIGH),
        ],
    )
    def test_classify_variance_boundaries(self, variance: float, level: VarianceLevel) -> None:
        assert classify_variance(variance, EngineConfig()) == level

    def test_must_have_violation(self) -> None:
        config = EngineConfig()

        assert is_must_have_violation(True, 49.9, config) is True
        assert is_must_have_violation(True, 50.0, config) is False
        assert is_must_have_violation(False, 0.0, config) is False
