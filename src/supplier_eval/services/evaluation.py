"""EvaluationService: the operations exposed to callers.

Wires the pure scoring components (metric adapter, normalizer, comparison,
auto-scorer, matrix builder, override merge, readiness classifier) to the
injected source, store and audit sink.

Concurrency:
- At most one matrix recomputation per (tenant, opportunity) runs at a time;
  callers that waited on the lock re-check the snapshot and reuse a fresh one.
- Writes to one (tenant, opportunity, supplier) score set are serialized by a
  per-pair lock and guarded by the store's optimistic version check.

Every state change emits one audit event; audit failures propagate.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from supplier_eval.audit.sink import (
    EVENT_COMMENT_ADDED,
    EVENT_COMPARISON_COMPLETED,
    EVENT_MATRIX_RECOMPUTED,
    EVENT_OVERRIDE_APPLIED,
    EVENT_OVERRIDE_CLEARED,
    EVENT_READINESS_CLASSIFIED,
    EVENT_SCORES_REGENERATED,
    AuditSink,
    AuditSinkError,
    build_audit_event,
)
from supplier_eval.config import EngineConfig
from supplier_eval.errors import (
    ConcurrencyConflictError,
    EvaluationError,
    NoDataError,
    NotFoundError,
    ReadinessNotApplicableError,
    ValidationError,
)
from supplier_eval.locks import KeyedLocks
from supplier_eval.matrix.builder import build_matrix, effective_level
from supplier_eval.matrix.cache import is_stale
from supplier_eval.matrix.export import export_matrix_csv
from supplier_eval.matrix.filters import apply_filters
from supplier_eval.models.matrix import MatrixFilters, ScoringMatrix
from supplier_eval.models.metrics import ComparisonBreakdown
from supplier_eval.models.opportunity import Requirement, SupplierResponse
from supplier_eval.models.readiness import BatchReadinessResult, ReadinessInput, ReadinessResult
from supplier_eval.models.scores import (
    EvaluationSummary,
    EvaluationWorkspace,
    EvaluatorComment,
    RequirementScore,
    ScoreLevel,
    ScoringItem,
    VarianceLevel,
)
from supplier_eval.observability.tracing import start_span
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
from supplier_eval.persistence.protocols import EvaluationSource, EvaluationStore
from supplier_eval.readiness.classifier import classify
from supplier_eval.scoring.auto_scorer import AutoScorer, SemanticScorer
from supplier_eval.scoring.comparison import compare_pool
from supplier_eval.scoring.metric_adapter import extract_base_metrics
from supplier_eval.scoring.weights import resolve_weights

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_SUMMARY_PRECISION = 2


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _mean(values: Sequence[float]) -> float:
    return round(sum(values) / len(values), _SUMMARY_PRECISION) if values else 0.0


class EvaluationService:
    """Supplier evaluation operations scoped by tenant.

    Args:
        source: Read access to requirements, responses and the buyer's matrix.
        store: Persistence for derived state.
        audit_sink: Receives one event per state change (fail-closed).
        config: Engine configuration; defaults to EngineConfig().
        semantic_scorer: Optional qualitative answer scorer.
        clock: Time source; injectable for deterministic tests.
    """

    def __init__(
        self,
        *,
        source: EvaluationSource,
        store: EvaluationStore,
        audit_sink: AuditSink,
        config: EngineConfig | None = None,
        semantic_scorer: SemanticScorer | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._audit_sink = audit_sink
        self._config = config or EngineConfig()
        self._scorer = AutoScorer(self._config, semantic_scorer=semantic_scorer)
        self._clock = clock or _utcnow
        self._matrix_locks = KeyedLocks()
        self._score_locks = KeyedLocks()

    @property
    def config(self) -> EngineConfig:
        return self._config

    # ------------------------------------------------------------------
    # Weighted comparison
    # ------------------------------------------------------------------

    def run_comparison(self, tenant_id: str, opportunity_id: str) -> list[ComparisonBreakdown]:
        """Score every submitted supplier on normalized metrics and rank them.

        Each supplier's stored breakdown is overwritten, so re-running with
        unchanged inputs yields identical stored results.

        Returns:
            Breakdowns ordered by descending total score, ties by supplier id.

        Raises:
            NotFoundError: Unknown opportunity.
            NoDataError: No submitted responses.
        """
        with start_span(
            "evaluation.run_comparison", tenant_id=tenant_id, opportunity_id=opportunity_id
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            responses = self._submitted_responses(tenant_id, opportunity_id)
            if not responses:
                raise NoDataError(
                    f"Opportunity {opportunity_id} has no submitted supplier responses",
                    details={"opportunity_id": opportunity_id},
                )

            criteria = self._source.load_evaluation_matrix(tenant_id, opportunity_id)
            weights, matrix_used = resolve_weights(criteria)
            pool = [extract_base_metrics(r.supplier_id, r.extraction) for r in responses]
            breakdowns = compare_pool(
                pool,
                weights,
                matrix_used=matrix_used,
                neutral_score=self._config.neutral_metric_score,
            )
            for breakdown in breakdowns:
                self._store.save_breakdown(tenant_id, opportunity_id, breakdown)

            self._emit_audit(
                EVENT_COMPARISON_COMPLETED,
                tenant_id=tenant_id,
                opportunity_id=opportunity_id,
                supplier_count=len(breakdowns),
                matrix_used=matrix_used,
                ranking=[b.supplier_id for b in breakdowns],
            )
            logger.info(
                "Comparison for opportunity %s: %d suppliers (matrix_used=%s)",
                opportunity_id,
                len(breakdowns),
                matrix_used,
            )
            return breakdowns

    # ------------------------------------------------------------------
    # Scoring matrix
    # ------------------------------------------------------------------

    def get_scoring_matrix(
        self,
        tenant_id: str,
        opportunity_id: str,
        *,
        force_recompute: bool = False,
        filters: MatrixFilters | None = None,
    ) -> ScoringMatrix:
        """Return the scoring matrix, recomputing it when stale or forced.

        A fresh snapshot is returned unchanged with no side effects. Filters
        are applied to the returned view only; the stored snapshot is never
        filtered.

        Raises:
            NotFoundError: Unknown opportunity.
            NoDataError: Recompute needed but no submitted responses or requirements.
            ValidationError: Filter combination that cannot match anything.
            ConcurrencyConflictError: Another process stored a snapshot concurrently.
        """
        with start_span(
            "evaluation.get_scoring_matrix",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            force_recompute=force_recompute,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            requested_at = self._clock()
            snapshot = self._store.get_matrix(tenant_id, opportunity_id)
            if (
                snapshot is None
                or force_recompute
                or self._is_stale(tenant_id, opportunity_id, snapshot)
            ):
                snapshot = self._recompute_once(
                    tenant_id, opportunity_id, force_recompute, requested_at
                )
            else:
                logger.debug("Scoring matrix cache hit for opportunity %s", opportunity_id)
            return apply_filters(snapshot, filters)

    def export_scoring_matrix(
        self, tenant_id: str, opportunity_id: str, filters: MatrixFilters | None = None
    ) -> str:
        """CSV export of the (optionally filtered) scoring matrix."""
        matrix = self.get_scoring_matrix(tenant_id, opportunity_id, filters=filters)
        return export_matrix_csv(matrix)

    def _is_stale(
        self, tenant_id: str, opportunity_id: str, snapshot: ScoringMatrix | None
    ) -> bool:
        return is_stale(
            snapshot,
            now=self._clock(),
            ttl_seconds=self._config.matrix_ttl_seconds,
            last_write_at=self._store.last_score_write_at(tenant_id, opportunity_id),
        )

    def _recompute_once(
        self,
        tenant_id: str,
        opportunity_id: str,
        force_recompute: bool,
        requested_at: datetime,
    ) -> ScoringMatrix:
        with self._matrix_locks.hold((tenant_id, opportunity_id)):
            snapshot = self._store.get_matrix(tenant_id, opportunity_id)
            if force_recompute:
                fresh_enough = (
                    snapshot is not None and snapshot.meta.generated_at >= requested_at
                )
            else:
                fresh_enough = not self._is_stale(tenant_id, opportunity_id, snapshot)
            if fresh_enough and snapshot is not None:
                logger.debug(
                    "Reusing scoring matrix v%d produced while waiting (opportunity %s)",
                    snapshot.meta.version,
                    opportunity_id,
                )
                return snapshot
            return self._recompute(tenant_id, opportunity_id, snapshot, force_recompute)

    def _recompute(
        self,
        tenant_id: str,
        opportunity_id: str,
        previous: ScoringMatrix | None,
        force_recompute: bool,
    ) -> ScoringMatrix:
        # Stamped before reading inputs: a score write landing mid-build must
        # postdate the snapshot so is_stale picks it up.
        generated_at = self._clock()
        requirements = self._source.load_requirements(tenant_id, opportunity_id)
        responses = self._submitted_responses(tenant_id, opportunity_id)
        stored_scores: dict[str, list[RequirementScore]] = {}
        for response in responses:
            score_set = self._store.get_score_set(tenant_id, opportunity_id, response.supplier_id)
            if score_set is not None:
                stored_scores[response.supplier_id] = score_set.scores

        previous_version = previous.meta.version if previous is not None else 0
        matrix = build_matrix(
            opportunity_id,
            requirements,
            responses,
            scorer=self._scorer,
            config=self._config,
            generated_at=generated_at,
            version=previous_version + 1,
            stored_scores=stored_scores,
        )
        self._store.save_matrix(tenant_id, matrix, expected_version=previous_version)
        self._emit_audit(
            EVENT_MATRIX_RECOMPUTED,
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            version=matrix.meta.version,
            total_requirements=matrix.meta.total_requirements,
            total_suppliers=matrix.meta.total_suppliers,
            forced=force_recompute,
        )
        return matrix

    # ------------------------------------------------------------------
    # Override layer
    # ------------------------------------------------------------------

    def apply_override(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        requirement_id: str,
        *,
        score: float,
        reason: str,
        actor_id: str,
        expected_version: int | None = None,
    ) -> RequirementScore:
        """Set a buyer override on one requirement score.

        Args:
            expected_version: Score set version the caller read (0 = never
                written). When given, a mismatch fails instead of overwriting.

        Raises:
            ValidationError: Score outside [0, 100] or blank justification.
            NotFoundError: Unknown opportunity, supplier or requirement.
            NoDataError: Supplier has not submitted a response.
            ConcurrencyConflictError: Score set changed since ``expected_version``.
        """
        with start_span(
            "evaluation.apply_override",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
            requirement_id=requirement_id,
        ):
            validate_override(score, reason)
            self._require_opportunity(tenant_id, opportunity_id)
            response = self._require_submitted(tenant_id, opportunity_id, supplier_id)
            requirement = self._require_requirement(tenant_id, opportunity_id, requirement_id)

            with self._score_locks.hold((tenant_id, opportunity_id, supplier_id)):
                scores, version = self._current_scores(
                    tenant_id, opportunity_id, response, requirement
                )
                self._check_expected_version(supplier_id, expected_version, version)
                previous = next(s for s in scores if s.requirement_id == requirement_id)
                now = self._clock()
                updated_list, updated = set_override(
                    scores,
                    requirement_id,
                    score=score,
                    reason=reason,
                    actor_id=actor_id,
                    now=now,
                )
                score_set = self._store.save_score_set(
                    tenant_id,
                    opportunity_id,
                    supplier_id,
                    updated_list,
                    expected_version=version,
                    now=now,
                )

            variance = compute_variance(updated)
            self._emit_audit(
                EVENT_OVERRIDE_APPLIED,
                tenant_id=tenant_id,
                opportunity_id=opportunity_id,
                actor_id=actor_id,
                supplier_id=supplier_id,
                requirement_id=requirement_id,
                auto_score=updated.auto_score.raw_score,
                override_score=score,
                previous_override_score=(
                    previous.buyer_override.override_score
                    if previous.buyer_override is not None
                    else None
                ),
                override_reason=reason.strip(),
                variance=variance,
                variance_level=classify_variance(variance, self._config).value,
                score_set_version=score_set.version,
            )
            return updated

    def clear_override(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        requirement_id: str,
        *,
        actor_id: str,
        expected_version: int | None = None,
    ) -> RequirementScore:
        """Remove the buyer override of one requirement score.

        Clearing a requirement that carries no override writes nothing and
        emits no audit event.

        Raises:
            NotFoundError: Unknown opportunity, supplier or requirement.
            NoDataError: Supplier has not submitted a response.
            ConcurrencyConflictError: Score set changed since ``expected_version``.
        """
        with start_span(
            "evaluation.clear_override",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
            requirement_id=requirement_id,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            response = self._require_submitted(tenant_id, opportunity_id, supplier_id)
            requirement = self._require_requirement(tenant_id, opportunity_id, requirement_id)

            with self._score_locks.hold((tenant_id, opportunity_id, supplier_id)):
                scores, version = self._current_scores(
                    tenant_id, opportunity_id, response, requirement
                )
                self._check_expected_version(supplier_id, expected_version, version)
                current = next(s for s in scores if s.requirement_id == requirement_id)
                if current.buyer_override is None:
                    return current
                updated_list, updated = remove_override(scores, requirement_id)
                score_set = self._store.save_score_set(
                    tenant_id,
                    opportunity_id,
                    supplier_id,
                    updated_list,
                    expected_version=version,
                    now=self._clock(),
                )

            self._emit_audit(
                EVENT_OVERRIDE_CLEARED,
                tenant_id=tenant_id,
                opportunity_id=opportunity_id,
                actor_id=actor_id,
                supplier_id=supplier_id,
                requirement_id=requirement_id,
                cleared_override_score=current.buyer_override.override_score,
                score_set_version=score_set.version,
            )
            return updated

    def regenerate_scores(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        *,
        actor_id: str | None = None,
    ) -> list[RequirementScore]:
        """Recompute a supplier's auto scores, carrying every buyer override forward.

        Raises:
            NotFoundError: Unknown opportunity or supplier.
            NoDataError: Supplier has not submitted, or no requirements exist.
            ConcurrencyConflictError: Another process wrote the score set concurrently.
        """
        with start_span(
            "evaluation.regenerate_scores",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            response = self._require_submitted(tenant_id, opportunity_id, supplier_id)
            requirements = self._source.load_requirements(tenant_id, opportunity_id)
            if not requirements:
                raise NoDataError(
                    f"Opportunity {opportunity_id} has no requirements defined",
                    details={"opportunity_id": opportunity_id},
                )

            with self._score_locks.hold((tenant_id, opportunity_id, supplier_id)):
                current = self._store.get_score_set(tenant_id, opportunity_id, supplier_id)
                previous = current.scores if current is not None else []
                fresh = self._scorer.score_supplier(requirements, response.extraction)
                merged = merge_preserving_overrides(previous, fresh)
                score_set = self._store.save_score_set(
                    tenant_id,
                    opportunity_id,
                    supplier_id,
                    merged,
                    expected_version=current.version if current is not None else 0,
                    now=self._clock(),
                )

            self._emit_audit(
                EVENT_SCORES_REGENERATED,
                tenant_id=tenant_id,
                opportunity_id=opportunity_id,
                actor_id=actor_id,
                supplier_id=supplier_id,
                requirement_count=len(merged),
                preserved_override_count=sum(1 for s in merged if s.is_overridden),
                score_set_version=score_set.version,
            )
            return merged

    def _current_scores(
        self,
        tenant_id: str,
        opportunity_id: str,
        response: SupplierResponse,
        requirement: Requirement,
    ) -> tuple[list[RequirementScore], int]:
        """Stored scores (or fresh ones when never written) containing ``requirement``."""
        stored = self._store.get_score_set(tenant_id, opportunity_id, response.supplier_id)
        if stored is None:
            requirements = self._source.load_requirements(tenant_id, opportunity_id)
            return self._scorer.score_supplier(requirements, response.extraction), 0
        scores = list(stored.scores)
        if stored.get(requirement.requirement_id) is None:
            scores.extend(self._scorer.score_supplier([requirement], response.extraction))
        return scores, stored.version

    def _check_expected_version(
        self, supplier_id: str, expected_version: int | None, actual_version: int
    ) -> None:
        if expected_version is not None and expected_version != actual_version:
            raise ConcurrencyConflictError(
                f"Scores for supplier {supplier_id} changed since version {expected_version}",
                expected_version=expected_version,
                actual_version=actual_version,
            )

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def classify_readiness(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ReadinessResult:
        """Classify one supplier and replace its stored readiness result.

        Raises:
            NotFoundError: Unknown opportunity or supplier.
            ReadinessNotApplicableError: Supplier has not submitted a response.
        """
        with start_span(
            "evaluation.classify_readiness",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            response = self._require_response(tenant_id, opportunity_id, supplier_id)
            return self._classify_response(tenant_id, opportunity_id, response)

    def classify_all_readiness(
        self, tenant_id: str, opportunity_id: str
    ) -> BatchReadinessResult:
        """Classify every supplier; one supplier's failure does not block the others.

        Audit failures are not per-supplier failures and propagate.

        Raises:
            NotFoundError: Unknown opportunity.
        """
        with start_span(
            "evaluation.classify_all_readiness",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            responses = sorted(
                self._source.load_responses(tenant_id, opportunity_id),
                key=lambda r: r.supplier_id,
            )
            results: dict[str, ReadinessResult] = {}
            errors: dict[str, str] = {}
            for response in responses:
                try:
                    results[response.supplier_id] = self._classify_response(
                        tenant_id, opportunity_id, response
                    )
                except AuditSinkError:
                    raise
                except EvaluationError as e:
                    logger.warning(
                        "Readiness skipped for supplier %s: %s", response.supplier_id, e.message
                    )
                    errors[response.supplier_id] = e.code
                except Exception:
                    logger.exception(
                        "Readiness classification failed for supplier %s", response.supplier_id
                    )
                    errors[response.supplier_id] = "INTERNAL_ERROR"
            return BatchReadinessResult(
                opportunity_id=opportunity_id, results=results, errors=errors
            )

    def _classify_response(
        self, tenant_id: str, opportunity_id: str, response: SupplierResponse
    ) -> ReadinessResult:
        if not response.submitted:
            raise ReadinessNotApplicableError(
                f"Supplier {response.supplier_id} has not submitted a response",
                details={"opportunity_id": opportunity_id, "supplier_id": response.supplier_id},
            )
        data = ReadinessInput.from_extraction(response.supplier_id, response.extraction)
        result = classify(data, self._config)
        self._store.save_readiness(tenant_id, opportunity_id, result)
        self._emit_audit(
            EVENT_READINESS_CLASSIFIED,
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=response.supplier_id,
            indicator=result.indicator.value,
            score=result.score,
        )
        return result

    # ------------------------------------------------------------------
    # Evaluation workspace
    # ------------------------------------------------------------------

    def add_comment(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        requirement_id: str,
        *,
        text: str,
        actor_id: str,
    ) -> EvaluatorComment:
        """Attach an evaluator comment to one requirement of one supplier.

        Raises:
            ValidationError: Blank comment text.
            NotFoundError: Unknown opportunity, supplier or requirement.
        """
        with start_span(
            "evaluation.add_comment",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
            requirement_id=requirement_id,
        ):
            if not text or not text.strip():
                raise ValidationError(
                    "Comment text must not be blank",
                    details={"requirement_id": requirement_id},
                )
            self._require_opportunity(tenant_id, opportunity_id)
            self._require_response(tenant_id, opportunity_id, supplier_id)
            self._require_requirement(tenant_id, opportunity_id, requirement_id)

            comment = EvaluatorComment(
                comment_id=str(uuid.uuid4()),
                supplier_id=supplier_id,
                requirement_id=requirement_id,
                text=text.strip(),
                user_id=actor_id,
                created_at=self._clock(),
            )
            self._store.add_comment(tenant_id, opportunity_id, comment)
            self._emit_audit(
                EVENT_COMMENT_ADDED,
                tenant_id=tenant_id,
                opportunity_id=opportunity_id,
                actor_id=actor_id,
                supplier_id=supplier_id,
                requirement_id=requirement_id,
                comment_id=comment.comment_id,
            )
            return comment

    def get_evaluation_workspace(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> EvaluationWorkspace:
        """Per-requirement evaluation view for one supplier, with summary statistics.

        Reads only: scores are taken from the stored score set, falling back to
        fresh auto scores for requirements it does not cover.

        Raises:
            NotFoundError: Unknown opportunity or supplier.
            NoDataError: Supplier has not submitted, or no requirements exist.
        """
        with start_span(
            "evaluation.get_evaluation_workspace",
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            supplier_id=supplier_id,
        ):
            self._require_opportunity(tenant_id, opportunity_id)
            response = self._require_submitted(tenant_id, opportunity_id, supplier_id)
            requirements = self._source.load_requirements(tenant_id, opportunity_id)
            if not requirements:
                raise NoDataError(
                    f"Opportunity {opportunity_id} has no requirements defined",
                    details={"opportunity_id": opportunity_id},
                )

            score_set = self._store.get_score_set(tenant_id, opportunity_id, supplier_id)
            stored = {s.requirement_id: s for s in score_set.scores} if score_set else {}
            missing = [r for r in requirements if r.requirement_id not in stored]
            fresh = {
                s.requirement_id: s
                for s in self._scorer.score_supplier(missing, response.extraction)
            }

            comments: dict[str, list[EvaluatorComment]] = {}
            for comment in self._store.list_comments(tenant_id, opportunity_id, supplier_id):
                comments.setdefault(comment.requirement_id, []).append(comment)

            items = [
                self._scoring_item(
                    requirement,
                    stored[requirement.requirement_id]
                    if requirement.requirement_id in stored
                    else fresh[requirement.requirement_id],
                    response,
                    comments.get(requirement.requirement_id, []),
                )
                for requirement in requirements
            ]
            return EvaluationWorkspace(
                opportunity_id=opportunity_id,
                supplier_id=supplier_id,
                supplier_name=response.display_name,
                score_set_version=score_set.version if score_set is not None else 0,
                items=items,
                summary=self._summarize_items(requirements, items),
            )

    def _scoring_item(
        self,
        requirement: Requirement,
        score: RequirementScore,
        response: SupplierResponse,
        comments: list[EvaluatorComment],
    ) -> ScoringItem:
        answer = response.extraction.answer_for(requirement.requirement_id)
        variance = compute_variance(score)
        override = score.buyer_override
        return ScoringItem(
            requirement_id=requirement.requirement_id,
            requirement_title=requirement.title,
            supplier_response_text=answer.text if answer is not None else None,
            auto_score=score.auto_score.raw_score,
            override_score=override.override_score if override is not None else None,
            override_justification=override.override_reason if override is not None else None,
            effective_score=score.effective_score,
            variance=variance,
            variance_level=classify_variance(variance, self._config),
            must_have=requirement.must_have,
            must_have_violation=is_must_have_violation(
                requirement.must_have, score.effective_score, self._config
            ),
            score_level=effective_level(score, self._config),
            comments=comments,
        )

    def _summarize_items(
        self, requirements: Sequence[Requirement], items: Sequence[ScoringItem]
    ) -> EvaluationSummary:
        weights = {
            r.requirement_id: r.weight * self._config.category_weight(r.category)
            for r in requirements
        }
        applicable = [i for i in items if i.score_level != ScoreLevel.NOT_APPLICABLE]
        total_weight = sum(weights[i.requirement_id] for i in applicable)

        def weighted(values: dict[str, float]) -> float:
            if total_weight <= 0:
                return 0.0
            total = sum(weights[i.requirement_id] * values[i.requirement_id] for i in applicable)
            return round(total / total_weight, _SUMMARY_PRECISION)

        variances = [i.variance for i in items]
        return EvaluationSummary(
            total_requirements=len(items),
            average_auto_score=_mean([i.auto_score for i in applicable]),
            average_effective_score=_mean([i.effective_score for i in applicable]),
            weighted_auto_score=weighted({i.requirement_id: i.auto_score for i in applicable}),
            weighted_effective_score=weighted(
                {i.requirement_id: i.effective_score for i in applicable}
            ),
            override_count=sum(1 for i in items if i.override_score is not None),
            comment_count=sum(len(i.comments) for i in items),
            must_have_failures=sum(1 for i in items if i.must_have_violation),
            missing_responses=sum(1 for i in items if i.score_level == ScoreLevel.MISSING),
            average_variance=_mean(variances),
            max_variance=max(variances, default=0.0),
            high_variance_count=sum(1 for i in items if i.variance_level == VarianceLevel.HIGH),
        )

    # ------------------------------------------------------------------
    # Lookups and audit
    # ------------------------------------------------------------------

    def _require_opportunity(self, tenant_id: str, opportunity_id: str) -> None:
        if not self._source.opportunity_exists(tenant_id, opportunity_id):
            raise NotFoundError(
                f"Opportunity {opportunity_id} not found",
                details={"opportunity_id": opportunity_id},
            )

    def _submitted_responses(self, tenant_id: str, opportunity_id: str) -> list[SupplierResponse]:
        return [r for r in self._source.load_responses(tenant_id, opportunity_id) if r.submitted]

    def _require_response(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> SupplierResponse:
        response = self._source.get_response(tenant_id, opportunity_id, supplier_id)
        if response is None:
            raise NotFoundError(
                f"Supplier {supplier_id} has no response for opportunity {opportunity_id}",
                details={"opportunity_id": opportunity_id, "supplier_id": supplier_id},
            )
        return response

    def _require_submitted(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> SupplierResponse:
        response = self._require_response(tenant_id, opportunity_id, supplier_id)
        if not response.submitted:
            raise NoDataError(
                f"Supplier {supplier_id} has not submitted a response",
                details={"opportunity_id": opportunity_id, "supplier_id": supplier_id},
            )
        return response

    def _require_requirement(
        self, tenant_id: str, opportunity_id: str, requirement_id: str
    ) -> Requirement:
        for requirement in self._source.load_requirements(tenant_id, opportunity_id):
            if requirement.requirement_id == requirement_id:
                return requirement
        raise NotFoundError(
            f"Requirement {requirement_id} not found in opportunity {opportunity_id}",
            details={"opportunity_id": opportunity_id, "requirement_id": requirement_id},
        )

    def _emit_audit(
        self,
        event_type: str,
        *,
        tenant_id: str,
        opportunity_id: str,
        actor_id: str | None = None,
        **data: Any,
    ) -> None:
        """Emit an audit event. Fail-closed on sink failure.

        Raises:
            AuditSinkError: If the audit sink fails.
        """
        event = build_audit_event(
            event_type,
            tenant_id=tenant_id,
            opportunity_id=opportunity_id,
            timestamp=self._clock(),
            actor_id=actor_id,
            **data,
        )
        try:
            self._audit_sink.emit(event)
        except AuditSinkError:
            raise
        except Exception as exc:
            raise AuditSinkError(f"Audit sink failure for event '{event_type}': {exc}") from exc
