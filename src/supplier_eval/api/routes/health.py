"""Liveness endpoint (no credentials)."""

from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from supplier_eval.observability.tracing import is_tracing_enabled
from supplier_eval.persistence.db import is_database_configured

router = APIRouter(tags=["Health"])

SERVICE_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: Literal["ok"]
    time: str
    version: str
    store: Literal["sql", "memory"]
    tracing: bool


@router.get("/health", response_model=HealthResponse)
def get_health() -> HealthResponse:
    """Report liveness plus which evaluation store and tracing mode are active."""
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=SERVICE_VERSION,
        store="sql" if is_database_configured() else "memory",
        tracing=is_tracing_enabled(),
    )
