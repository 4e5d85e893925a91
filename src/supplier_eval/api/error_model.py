"""Error envelope returned by every failing evaluation API call.

    {"code": "NO_DATA", "message": "...", "details": {...}, "request_id": "..."}

``code`` is machine-readable and stable; ``details`` carries ids and versions
only, never justification text or stack traces.
"""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from supplier_eval.api.middleware.request_id import REQUEST_ID_HEADER
from supplier_eval.errors import (
    ConcurrencyConflictError,
    EvaluationError,
    NoDataError,
    NotFoundError,
    ValidationError,
)

STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    500: "INTERNAL_ERROR",
}

# Checked in order; NoDataError also covers ReadinessNotApplicableError.
DOMAIN_ERROR_STATUS: tuple[tuple[type[EvaluationError], int], ...] = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (NoDataError, 409),
    (ConcurrencyConflictError, 409),
)


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None
    request_id: str


def get_error_code_for_status(status_code: int) -> str:
    return STATUS_CODES.get(status_code, "ERROR")


def status_for_domain_error(exc: EvaluationError) -> int:
    """HTTP status for a domain error; 500 when the error type is not mapped."""
    return next(
        (status for error_type, status in DOMAIN_ERROR_STATUS if isinstance(exc, error_type)),
        500,
    )


def resolve_request_id(request: Request) -> str:
    """Id set by RequestIdMiddleware, else the raw header, else a fresh uuid4.

    The fallbacks matter for errors raised before the middleware ran.
    """
    state_id = getattr(request.state, "request_id", None)
    if state_id:
        return str(state_id)
    return request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Render an ErrorEnvelope, echoing the request id in the X-Request-Id header."""
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        request_id=resolve_request_id(request),
    )
    return JSONResponse(
        status_code=http_status,
        content=envelope.model_dump(mode="json"),
        headers={REQUEST_ID_HEADER: envelope.request_id},
    )
