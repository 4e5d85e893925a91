"""In-memory EvaluationSource and EvaluationStore.

Used by tests, the CLI and the API when no database is configured. All reads
filter by tenant id so cross-tenant access returns None (no existence oracle).
"""

from __future__ import annotations

import threading
from datetime import datetime

from supplier_eval.errors import ConcurrencyConflictError
from supplier_eval.models.matrix import ScoringMatrix
from supplier_eval.models.metrics import ComparisonBreakdown
from supplier_eval.models.opportunity import EvaluationCriterion, Requirement, SupplierResponse
from supplier_eval.models.readiness import ReadinessResult
from supplier_eval.models.scores import EvaluatorComment, RequirementScore, ScoreSet

_OppKey = tuple[str, str]
_SupplierKey = tuple[str, str, str]


class InMemoryEvaluationSource:
    """Opportunity data registered up front by the caller."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requirements: dict[_OppKey, list[Requirement]] = {}
        self._criteria: dict[_OppKey, list[EvaluationCriterion] | None] = {}
        self._responses: dict[_OppKey, dict[str, SupplierResponse]] = {}

    def register_opportunity(
        self,
        tenant_id: str,
        opportunity_id: str,
        requirements: list[Requirement],
        *,
        criteria: list[EvaluationCriterion] | None = None,
    ) -> None:
        key = (tenant_id, opportunity_id)
        with self._lock:
            self._requirements[key] = list(requirements)
            self._criteria[key] = list(criteria) if criteria is not None else None
            self._responses.setdefault(key, {})

    def put_response(
        self, tenant_id: str, opportunity_id: str, response: SupplierResponse
    ) -> None:
        """Add or replace a supplier response.

        Raises:
            KeyError: If the opportunity was never registered for this tenant.
        """
        key = (tenant_id, opportunity_id)
        with self._lock:
            if key not in self._requirements:
                raise KeyError(f"Opportunity {opportunity_id} is not registered")
            self._responses[key][response.supplier_id] = response

    def set_evaluation_matrix(
        self, tenant_id: str, opportunity_id: str, criteria: list[EvaluationCriterion] | None
    ) -> None:
        with self._lock:
            self._criteria[(tenant_id, opportunity_id)] = criteria

    def opportunity_exists(self, tenant_id: str, opportunity_id: str) -> bool:
        return (tenant_id, opportunity_id) in self._requirements

    def load_requirements(self, tenant_id: str, opportunity_id: str) -> list[Requirement]:
        return list(self._requirements.get((tenant_id, opportunity_id), []))

    def load_responses(self, tenant_id: str, opportunity_id: str) -> list[SupplierResponse]:
        with self._lock:
            return list(self._responses.get((tenant_id, opportunity_id), {}).values())

    def get_response(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> SupplierResponse | None:
        with self._lock:
            return self._responses.get((tenant_id, opportunity_id), {}).get(supplier_id)

    def load_evaluation_matrix(
        self, tenant_id: str, opportunity_id: str
    ) -> list[EvaluationCriterion] | None:
        return self._criteria.get((tenant_id, opportunity_id))


class InMemoryEvaluationStore:
    """Thread-safe dict-backed store with the same version checks as the SQL store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._matrices: dict[_OppKey, ScoringMatrix] = {}
        self._breakdowns: dict[_SupplierKey, ComparisonBreakdown] = {}
        self._readiness: dict[_SupplierKey, ReadinessResult] = {}
        self._score_sets: dict[_SupplierKey, ScoreSet] = {}
        self._last_score_write: dict[_OppKey, datetime] = {}
        self._comments: dict[_OppKey, list[EvaluatorComment]] = {}

    def get_matrix(self, tenant_id: str, opportunity_id: str) -> ScoringMatrix | None:
        with self._lock:
            return self._matrices.get((tenant_id, opportunity_id))

    def save_matrix(self, tenant_id: str, matrix: ScoringMatrix, *, expected_version: int) -> None:
        key = (tenant_id, matrix.opportunity_id)
        with self._lock:
            current = self._matrices.get(key)
            current_version = current.meta.version if current is not None else 0
            if current_version != expected_version:
                raise ConcurrencyConflictError(
                    f"Scoring matrix for {matrix.opportunity_id} changed concurrently",
                    expected_version=expected_version,
                    actual_version=current_version,
                )
            self._matrices[key] = matrix

    def get_breakdown(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ComparisonBreakdown | None:
        with self._lock:
            return self._breakdowns.get((tenant_id, opportunity_id, supplier_id))

    def save_breakdown(
        self, tenant_id: str, opportunity_id: str, breakdown: ComparisonBreakdown
    ) -> None:
        with self._lock:
            self._breakdowns[(tenant_id, opportunity_id, breakdown.supplier_id)] = breakdown

    def get_readiness(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ReadinessResult | None:
        with self._lock:
            return self._readiness.get((tenant_id, opportunity_id, supplier_id))

    def save_readiness(self, tenant_id: str, opportunity_id: str, result: ReadinessResult) -> None:
        with self._lock:
            self._readiness[(tenant_id, opportunity_id, result.supplier_id)] = result

    def get_score_set(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ScoreSet | None:
        with self._lock:
            return self._score_sets.get((tenant_id, opportunity_id, supplier_id))

    def save_score_set(
        self,
        tenant_id: str,
        opportunity_id: str,
        supplier_id: str,
        scores: list[RequirementScore],
        *,
        expected_version: int,
        now: datetime,
    ) -> ScoreSet:
        key = (tenant_id, opportunity_id, supplier_id)
        with self._lock:
            current = self._score_sets.get(key)
            current_version = current.version if current is not None else 0
            if current_version != expected_version:
                raise ConcurrencyConflictError(
                    f"Scores for supplier {supplier_id} changed concurrently",
                    expected_version=expected_version,
                    actual_version=current_version,
                )
            score_set = ScoreSet(
                opportunity_id=opportunity_id,
                supplier_id=supplier_id,
                scores=list(scores),
                version=current_version + 1,
                updated_at=now,
            )
            self._score_sets[key] = score_set
            opp_key = (tenant_id, opportunity_id)
            previous = self._last_score_write.get(opp_key)
            if previous is None or now > previous:
                self._last_score_write[opp_key] = now
            return score_set

    def last_score_write_at(self, tenant_id: str, opportunity_id: str) -> datetime | None:
        with self._lock:
            return self._last_score_write.get((tenant_id, opportunity_id))

    def add_comment(
        self, tenant_id: str, opportunity_id: str, comment: EvaluatorComment
    ) -> None:
        with self._lock:
            self._comments.setdefault((tenant_id, opportunity_id), []).append(comment)

    def list_comments(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> list[EvaluatorComment]:
        with self._lock:
            return [
                c
                for c in self._comments.get((tenant_id, opportunity_id), [])
                if c.supplier_id == supplier_id
            ]

    def clear(self) -> None:
        """Drop all stored state. For testing only."""
        with self._lock:
            self._matrices.clear()
            self._breakdowns.clear()
            self._readiness.clear()
            self._score_sets.clear()
            self._last_score_write.clear()
            self._comments.clear()
