"""Narrow repository interfaces injected into the evaluation service.

EvaluationSource is the read side supplied by collaborators (requirements,
supplier responses with extraction data, buyer evaluation matrix).
EvaluationStore persists what the engine derives. Every call is scoped by
tenant id; implementations must never return another tenant's records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from supplier_eval.models.matrix import ScoringMatrix
from supplier_eval.models.metrics import ComparisonBreakdown
from supplier_eval.models.opportunity import EvaluationCriterion, Requirement, SupplierResponse
from supplier_eval.models.readiness import ReadinessResult
from supplier_eval.models.scores import EvaluatorComment, RequirementScore, ScoreSet


@runtime_checkable
class EvaluationSource(Protocol):
    def opportunity_exists(self, tenant_id: str, opportunity_id: str) -> bool: ...

    def load_requirements(self, tenant_id: str, opportunity_id: str) -> list[Requirement]:
        """Requirements in template order."""
        ...

    def load_responses(self, tenant_id: str, opportunity_id: str) -> list[SupplierResponse]:
        """All supplier responses, submitted or not."""
        ...

    def get_response(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> SupplierResponse | None: ...

    def load_evaluation_matrix(
        self, tenant_id: str, opportunity_id: str
    ) -> list[EvaluationCriterion] | None:
        """Buyer evaluation matrix criteria, or None when the buyer authored none."""
        ...


@runtime_checkable
class EvaluationStore(Protocol):
    def get_matrix(self, tenant_id: str, opportunity_id: str) -> ScoringMatrix | None: ...

    def save_matrix(self, tenant_id: str, matrix: ScoringMatrix, *, expected_version: int) -> None:
        """Persist a snapshot if the stored version still equals ``expected_version``.

        Raises:
            ConcurrencyConflictError: Another snapshot was written in between.
        """
        ...

    def get_breakdown(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ComparisonBreakdown | None: ...

    def save_breakdown(
        self, tenant_id: str, opportunity_id: str, breakdown: ComparisonBreakdown
    ) -> None: ...

    def get_readiness(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ReadinessResult | None: ...

    def save_readiness(
        self, tenant_id: str, opportunity_id: str, result: ReadinessResult
    ) -> None: ...

    def get_score_set(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> ScoreSet | None: ...

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
        """Write a score list with an optimistic version check (0 = not yet written).

        Raises:
            ConcurrencyConflictError: Stored version differs from ``expected_version``.
        """
        ...

    def last_score_write_at(self, tenant_id: str, opportunity_id: str) -> datetime | None: ...

    def add_comment(
        self, tenant_id: str, opportunity_id: str, comment: EvaluatorComment
    ) -> None: ...

    def list_comments(
        self, tenant_id: str, opportunity_id: str, supplier_id: str
    ) -> list[EvaluatorComment]: ...
