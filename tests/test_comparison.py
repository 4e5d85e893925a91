"""Tests for normalization, metric weights and the weighted comparison engine."""

from __future__ import annotations

import pytest

from supplier_eval.errors import NoDataError, ValidationError
from supplier_eval.models.metrics import ALL_METRICS, BaseMetrics, MetricName
from supplier_eval.models.opportunity import EvaluationCriterion
from supplier_eval.scoring.comparison import compare_pool, rank_breakdowns
from supplier_eval.scoring.normalizer import normalize, normalize_metric
from supplier_eval.scoring.weights import (
    DEFAULT_WEIGHTS,
    default_weight_vector,
    make_weight_vector,
    resolve_weights,
)


def _metrics(supplier_id: str, **values: float | int | None) -> BaseMetrics:
    return BaseMetrics(supplier_id=supplier_id, **values)


class TestNormalizeMetric:
    """Column normalization onto [0, 100]."""

    def test_lower_is_better(self) -> None:
        assert normalize_metric([1000.0, 2000.0], lower_is_better=True) == [100.0, 0.0]

    def test_higher_is_better(self) -> None:
        assert normalize_metric([10.0, 20.0, 30.0], lower_is_better=False) == [0.0, 50.0, 100.0]

    def test_equal_values_collapse_to_full_score(self) -> None:
        assert normalize_metric([5.0, 5.0, 5.0], lower_is_better=True) == [100.0] * 3

    def test_unknown_value_gets_neutral_score(self) -> None:
        result = normalize_metric([10.0, None, 20.0], lower_is_better=False)

        assert result == [0.0, 50.0, 100.0]

    def test_custom_neutral_score(self) -> None:
        result = normalize_metric([10.0, None], lower_is_better=False, neutral_score=30.0)

        assert result == [100.0, 30.0]

    def test_all_unknown_gives_full_score(self) -> None:
        assert normalize_metric([None, None], lower_is_better=True) == [100.0, 100.0]


class TestNormalizePool:
    def test_single_supplier_scores_full_on_every_metric(self) -> None:
        [only] = normalize([_metrics("acme", price_total=500.0, risk_count=3)])

        assert all(only.value(metric) == 100.0 for metric in ALL_METRICS)

    def test_result_independent_of_pool_order(self) -> None:
        pool = [
            _metrics("a", price_total=100.0, requirements_coverage_pct=80.0),
            _metrics("b", price_total=300.0, requirements_coverage_pct=40.0),
            _metrics("c", price_total=200.0),
        ]

        forward = {n.supplier_id: n for n in normalize(pool)}
        backward = {n.supplier_id: n for n in normalize(list(reversed(pool)))}

        assert forward == backward

    def test_empty_pool_is_no_data(self) -> None:
        with pytest.raises(NoDataError):
            normalize([])

    def test_duplicate_supplier_rejected(self) -> None:
        with pytest.raises(ValidationError):
            normalize([_metrics("a"), _metrics("a")])


class TestWeights:
    """Default and buyer-matrix weight vectors."""

    def test_defaults_sum_to_one_hundred(self) -> None:
        assert default_weight_vector().total == 100.0

    def test_no_matrix_uses_defaults(self) -> None:
        weights, matrix_used = resolve_weights(None)

        assert weights.weights == DEFAULT_WEIGHTS
        assert matrix_used is False

    def test_matrix_overlays_mapped_criteria(self) -> None:
        weights, matrix_used = resolve_weights(
            [
                EvaluationCriterion(criterion_id="pricingCompetitiveness", weight=50.0),
                EvaluationCriterion(criterion_id="teamCulture", weight=20.0),
            ]
        )

        assert matrix_used is True
        assert weights.weight(MetricName.PRICE_TOTAL) == 50.0
        assert weights.weight(MetricName.REQUIREMENTS_COVERAGE_PCT) == 30.0

    def test_only_unmapped_criteria_is_not_matrix_used(self) -> None:
        weights, matrix_used = resolve_weights(
            [EvaluationCriterion(criterion_id="teamCulture", weight=20.0)]
        )

        assert matrix_used is False
        assert weights.weights == DEFAULT_WEIGHTS

    def test_negative_weight_falls_back_to_defaults(self) -> None:
        weights, matrix_used = resolve_weights(
            [EvaluationCriterion(criterion_id="riskProfile", weight=-5.0)]
        )

        assert matrix_used is False
        assert weights.weights == DEFAULT_WEIGHTS

    def test_zero_sum_matrix_falls_back_to_defaults(self) -> None:
        criteria = [EvaluationCriterion(criterion_id=m.value, weight=0.0) for m in MetricName]

        weights, matrix_used = resolve_weights(criteria)

        assert matrix_used is False
        assert weights.total == 100.0

    def test_make_weight_vector_rejects_zero_sum(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            make_weight_vector({MetricName.PRICE_TOTAL: 0.0})

        assert exc_info.value.code == "VALIDATION_ERROR"


class TestComparePool:
    """Composite scores and ranking."""

    def test_cheaper_supplier_ranks_first(self) -> None:
        pool = [_metrics("expensive", price_total=2000.0), _metrics("cheap", price_total=1000.0)]

        breakdowns = compare_pool(pool, default_weight_vector())

        assert [b.supplier_id for b in breakdowns] == ["cheap", "expensive"]
        assert [b.rank for b in breakdowns] == [1, 2]
        assert breakdowns[0].total_score == 100.0
        assert breakdowns[1].total_score == 75.0
        assert breakdowns[0].metrics.price_total == 100.0
        assert breakdowns[1].metrics.price_total == 0.0

    def test_contributions_add_up_to_total(self) -> None:
        pool = [
            _metrics("a", price_total=100.0, risk_count=1, technical_claim_count=4),
            _metrics("b", price_total=180.0, risk_count=3, technical_claim_count=9),
        ]

        for breakdown in compare_pool(pool, default_weight_vector()):
            assert sum(breakdown.weighted_scores.values()) == pytest.approx(
                breakdown.total_score, abs=1e-5
            )

    def test_scaling_weights_does_not_change_scores(self) -> None:
        pool = [
            _metrics("a", price_total=100.0, requirements_coverage_pct=90.0),
            _metrics("b", price_total=150.0, requirements_coverage_pct=60.0),
        ]
        doubled = make_weight_vector({m: w * 2 for m, w in DEFAULT_WEIGHTS.items()})

        base = compare_pool(pool, default_weight_vector())
        scaled = compare_pool(pool, doubled)

        assert [b.total_score for b in base] == [b.total_score for b in scaled]

    def test_ties_broken_by_supplier_id(self) -> None:
        breakdowns = compare_pool([_metrics("zeta"), _metrics("alpha")], default_weight_vector())

        assert [b.supplier_id for b in breakdowns] == ["alpha", "zeta"]
        assert breakdowns[0].total_score == breakdowns[1].total_score == 100.0

    def test_rank_breakdowns_reassigns_ranks(self) -> None:
        ranked = compare_pool([_metrics("a", price_total=1.0)], default_weight_vector())

        assert rank_breakdowns(ranked)[0].rank == 1

    def test_matrix_used_flag_carried(self) -> None:
        [breakdown] = compare_pool([_metrics("a")], default_weight_vector(), matrix_used=True)

        assert breakdown.matrix_used is True
