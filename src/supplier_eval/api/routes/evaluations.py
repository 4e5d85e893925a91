"""Evaluation routes.

All routes are tenant-scoped through API key auth and delegate to the
EvaluationService stored on ``app.state.evaluation_service``. Domain errors
propagate to the exception handlers registered in ``api.main``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel

from supplier_eval.api.auth import RequireTenantContext
from supplier_eval.models.matrix import MatrixFilters, ScoringMatrix
from supplier_eval.models.metrics import ComparisonBreakdown
from supplier_eval.models.opportunity import RequirementCategory
from supplier_eval.models.readiness import BatchReadinessResult, ReadinessResult
from supplier_eval.models.scores import EvaluationWorkspace, EvaluatorComment, RequirementScore
from supplier_eval.services.evaluation import EvaluationService

router = APIRouter(prefix="/v1", tags=["Evaluations"])


def get_evaluation_service(request: Request) -> EvaluationService:
    service: EvaluationService = request.app.state.evaluation_service
    return service


EvaluationServiceDep = Annotated[EvaluationService, Depends(get_evaluation_service)]


class ComparisonRunResponse(BaseModel):
    opportunity_id: str
    breakdowns: list[ComparisonBreakdown]


class OverrideRequest(BaseModel):
    """Request body for PUT .../overrides/{requirement_id}.

    Range and blank-reason checks happen in the service so they surface as
    400 VALIDATION_ERROR rather than 422.
    """

    score: float
    reason: str
    expected_version: int | None = None


class RegenerateResponse(BaseModel):
    opportunity_id: str
    supplier_id: str
    scores: list[RequirementScore]


class CommentRequest(BaseModel):
    requirement_id: str
    text: str


def _matrix_filters(
    category: RequirementCategory | None,
    only_differentiators: bool,
    only_failed_or_partial: bool,
    search_term: str | None,
    supplier_ids: list[str] | None,
) -> MatrixFilters:
    return MatrixFilters(
        category=category,
        only_differentiators=only_differentiators,
        only_failed_or_partial=only_failed_or_partial,
        search_term=search_term,
        supplier_ids=supplier_ids,
    )


@router.post(
    "/opportunities/{opportunity_id}/comparison/run",
    response_model=ComparisonRunResponse,
)
def run_comparison(
    opportunity_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> ComparisonRunResponse:
    breakdowns = service.run_comparison(tenant_ctx.tenant_id, opportunity_id)
    return ComparisonRunResponse(opportunity_id=opportunity_id, breakdowns=breakdowns)


@router.get("/opportunities/{opportunity_id}/scoring-matrix", response_model=ScoringMatrix)
def get_scoring_matrix(
    opportunity_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
    force_recompute: bool = False,
    category: RequirementCategory | None = None,
    only_differentiators: bool = False,
    only_failed_or_partial: bool = False,
    search_term: str | None = None,
    supplier_ids: Annotated[list[str] | None, Query()] = None,
) -> ScoringMatrix:
    """Scoring matrix for an opportunity; filters shape the returned view only."""
    filters = _matrix_filters(
        category, only_differentiators, only_failed_or_partial, search_term, supplier_ids
    )
    return service.get_scoring_matrix(
        tenant_ctx.tenant_id,
        opportunity_id,
        force_recompute=force_recompute,
        filters=filters,
    )


@router.get("/opportunities/{opportunity_id}/scoring-matrix/export")
def export_scoring_matrix(
    opportunity_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
    category: RequirementCategory | None = None,
    only_differentiators: bool = False,
    only_failed_or_partial: bool = False,
    search_term: str | None = None,
    supplier_ids: Annotated[list[str] | None, Query()] = None,
) -> Response:
    filters = _matrix_filters(
        category, only_differentiators, only_failed_or_partial, search_term, supplier_ids
    )
    csv_text = service.export_scoring_matrix(tenant_ctx.tenant_id, opportunity_id, filters)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="scoring-matrix-{opportunity_id}.csv"'
        },
    )


@router.put(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/overrides/{requirement_id}",
    response_model=RequirementScore,
)
def apply_override(
    opportunity_id: str,
    supplier_id: str,
    requirement_id: str,
    body: OverrideRequest,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> RequirementScore:
    return service.apply_override(
        tenant_ctx.tenant_id,
        opportunity_id,
        supplier_id,
        requirement_id,
        score=body.score,
        reason=body.reason,
        actor_id=tenant_ctx.actor_id,
        expected_version=body.expected_version,
    )


@router.delete(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/overrides/{requirement_id}",
    response_model=RequirementScore,
)
def clear_override(
    opportunity_id: str,
    supplier_id: str,
    requirement_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
    expected_version: int | None = None,
) -> RequirementScore:
    return service.clear_override(
        tenant_ctx.tenant_id,
        opportunity_id,
        supplier_id,
        requirement_id,
        actor_id=tenant_ctx.actor_id,
        expected_version=expected_version,
    )


@router.post(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/scores/regenerate",
    response_model=RegenerateResponse,
)
def regenerate_scores(
    opportunity_id: str,
    supplier_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> RegenerateResponse:
    scores = service.regenerate_scores(
        tenant_ctx.tenant_id, opportunity_id, supplier_id, actor_id=tenant_ctx.actor_id
    )
    return RegenerateResponse(
        opportunity_id=opportunity_id, supplier_id=supplier_id, scores=scores
    )


@router.post(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/readiness",
    response_model=ReadinessResult,
)
def classify_readiness(
    opportunity_id: str,
    supplier_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> ReadinessResult:
    return service.classify_readiness(tenant_ctx.tenant_id, opportunity_id, supplier_id)


@router.post(
    "/opportunities/{opportunity_id}/readiness",
    response_model=BatchReadinessResult,
)
def classify_all_readiness(
    opportunity_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> BatchReadinessResult:
    return service.classify_all_readiness(tenant_ctx.tenant_id, opportunity_id)


@router.get(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/workspace",
    response_model=EvaluationWorkspace,
)
def get_evaluation_workspace(
    opportunity_id: str,
    supplier_id: str,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> EvaluationWorkspace:
    return service.get_evaluation_workspace(tenant_ctx.tenant_id, opportunity_id, supplier_id)


@router.post(
    "/opportunities/{opportunity_id}/suppliers/{supplier_id}/comments",
    response_model=EvaluatorComment,
    status_code=201,
)
def add_comment(
    opportunity_id: str,
    supplier_id: str,
    body: CommentRequest,
    tenant_ctx: RequireTenantContext,
    service: EvaluationServiceDep,
) -> EvaluatorComment:
    return service.add_comment(
        tenant_ctx.tenant_id,
        opportunity_id,
        supplier_id,
        body.requirement_id,
        text=body.text,
        actor_id=tenant_ctx.actor_id,
    )
