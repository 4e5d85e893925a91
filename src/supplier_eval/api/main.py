"""Evaluation API application factory."""

from fastapi import FastAPI

from supplier_eval.api.errors import register_error_handlers
from supplier_eval.api.middleware.request_id import RequestIdMiddleware
from supplier_eval.api.routes.evaluations import router as evaluations_router
from supplier_eval.api.routes.health import SERVICE_VERSION
from supplier_eval.api.routes.health import router as health_router
from supplier_eval.audit.sink import AuditSink, get_audit_sink
from supplier_eval.config import load_engine_config
from supplier_eval.observability.tracing import configure_tracing, instrument_fastapi
from supplier_eval.persistence.db import get_evaluation_store
from supplier_eval.persistence.memory import InMemoryEvaluationSource
from supplier_eval.services.evaluation import EvaluationService


def create_app(
    service: EvaluationService | None = None,
    audit_sink: AuditSink | None = None,
) -> FastAPI:
    """Create and configure the evaluation API.

    This factory:
    - Builds an EvaluationService from the environment unless one is given
    - Registers the request id middleware
    - Registers exception handlers producing the error envelope
    - Mounts the health router (no auth) and the /v1 evaluation routes (auth)

    Args:
        service: Preconfigured service (tests inject one over in-memory stores).
            If None, uses an in-memory source, the configured store and
            ``load_engine_config()``.
        audit_sink: Audit sink for the default service. Ignored when
            ``service`` is given.

    Returns:
        Configured FastAPI application instance.
    """
    if service is None:
        service = EvaluationService(
            source=InMemoryEvaluationSource(),
            store=get_evaluation_store(),
            audit_sink=audit_sink or get_audit_sink(),
            config=load_engine_config(),
        )

    app = FastAPI(
        title="Supplier Evaluation API",
        description="Cross-supplier comparison, requirement scoring matrix, "
        "buyer overrides and readiness classification",
        version=SERVICE_VERSION,
    )
    app.state.evaluation_service = service

    configure_tracing()
    app.add_middleware(RequestIdMiddleware)
    instrument_fastapi(app)

    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(evaluations_router)

    return app
